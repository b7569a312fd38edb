"""Models package."""

from mystery.models.rounds import (
    RoundOrdinal,
    ROUND_SEQUENCE,
    NEXT_ROUND,
    SCRIPTED_ROUNDS,
    next_round,
)
from mystery.models.session import (
    SessionStatus,
    ReadinessEntry,
    AccusationRecord,
    SessionAccusation,
    Player,
    Session,
    SessionSnapshot,
    utc_now,
)
from mystery.models.script import (
    CharacterRoundScript,
    Character,
    ScriptMetadata,
    GameFlow,
    Script,
    ScriptSummary,
    DEFAULT_ROUND_INSTRUCTIONS,
    FALLBACK_INSTRUCTIONS,
)

__all__ = [
    "RoundOrdinal",
    "ROUND_SEQUENCE",
    "NEXT_ROUND",
    "SCRIPTED_ROUNDS",
    "next_round",
    "SessionStatus",
    "ReadinessEntry",
    "AccusationRecord",
    "SessionAccusation",
    "Player",
    "Session",
    "SessionSnapshot",
    "utc_now",
    "CharacterRoundScript",
    "Character",
    "ScriptMetadata",
    "GameFlow",
    "Script",
    "ScriptSummary",
    "DEFAULT_ROUND_INSTRUCTIONS",
    "FALLBACK_INSTRUCTIONS",
]
