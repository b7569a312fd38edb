"""Engine package - round state machine and session orchestration."""

from .round_engine import (
    RoundEngine,
    RoundTransition,
    AccusationStatus,
    GameResults,
)
from .session_codes import (
    CODE_ALPHABET,
    CODE_LENGTH,
    SessionCodeGenerator,
    generate_session_code,
    is_valid_session_code,
)
from .session_coordinator import SessionCoordinator
from .validator import (
    SessionValidator,
    NoOpValidator,
    CollectingValidator,
    StrictValidator,
    create_validator,
)

__all__ = [
    "RoundEngine",
    "RoundTransition",
    "AccusationStatus",
    "GameResults",
    "CODE_ALPHABET",
    "CODE_LENGTH",
    "SessionCodeGenerator",
    "generate_session_code",
    "is_valid_session_code",
    "SessionCoordinator",
    "SessionValidator",
    "NoOpValidator",
    "CollectingValidator",
    "StrictValidator",
    "create_validator",
]
