"""Session and Player models.

These are the typed records the store hands to the engine. Required
fields are populated at the store boundary, so engine code never has to
guard against half-filled documents.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from mystery.errors import PlayerNotFound
from mystery.models.rounds import RoundOrdinal


def utc_now() -> datetime:
    """Timezone-aware current time used for every stored timestamp."""
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Lifecycle status of a session."""

    LOBBY = "LOBBY"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DELETED = "DELETED"


class ReadinessEntry(BaseModel):
    """One player's readiness for one round."""

    ready: bool = False
    ready_at: Optional[datetime] = None


class AccusationRecord(BaseModel):
    """An accusation as recorded on the accusing player."""

    round: RoundOrdinal
    accused_character: str
    timestamp: datetime = Field(default_factory=utc_now)


class SessionAccusation(BaseModel):
    """An accusation as recorded in the session-wide aggregate."""

    accuser_id: str
    accuser_character: Optional[str] = None
    accused_character: str
    round: RoundOrdinal
    timestamp: datetime = Field(default_factory=utc_now)


class Player(BaseModel):
    """One participant's membership in a session.

    Virtual players are host-controlled stand-ins; they are regular
    records flagged with is_virtual and may be displaced when a real
    player picks their character.
    """

    identity: str
    display_name: str
    is_host: bool = False
    is_virtual: bool = False
    character_name: Optional[str] = None
    is_murderer: bool = False
    readiness: dict[RoundOrdinal, ReadinessEntry] = Field(default_factory=dict)
    accusations_made: list[AccusationRecord] = Field(default_factory=list)
    joined_at: datetime = Field(default_factory=utc_now)
    last_active_at: datetime = Field(default_factory=utc_now)

    def is_ready_for(self, round_ordinal: RoundOrdinal) -> bool:
        """Missing entries count as not ready."""
        entry = self.readiness.get(round_ordinal)
        return entry is not None and entry.ready

    def accusations_in(self, round_ordinal: RoundOrdinal) -> list[AccusationRecord]:
        return [a for a in self.accusations_made if a.round == round_ordinal]

    def has_accused_in(self, round_ordinal: RoundOrdinal) -> bool:
        return any(a.round == round_ordinal for a in self.accusations_made)


class Session(BaseModel):
    """One running game instance, identified by its 6-character code."""

    code: str
    script_id: str
    status: SessionStatus = SessionStatus.LOBBY
    current_round: RoundOrdinal = RoundOrdinal.PENDING
    host_id: str
    min_players: int
    max_players: int
    accusations: list[SessionAccusation] = Field(default_factory=list)
    introduction_shown: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class SessionSnapshot(BaseModel):
    """Full view of a session: the session record plus all its players.

    Players are ordered by join time so that listings are stable across
    reads.
    """

    session: Session
    players: list[Player] = Field(default_factory=list)

    @property
    def code(self) -> str:
        return self.session.code

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def real_player_count(self) -> int:
        """Players that are not virtual stand-ins."""
        return sum(1 for p in self.players if not p.is_virtual)

    def player(self, identity: str) -> Optional[Player]:
        """Get a player by identity.

        Returns:
            Player if joined, None otherwise
        """
        for player in self.players:
            if player.identity == identity:
                return player
        return None

    def require_player(self, identity: str) -> Player:
        """Get a player by identity or raise PlayerNotFound."""
        player = self.player(identity)
        if player is None:
            raise PlayerNotFound(self.code, identity)
        return player

    def holders_of(self, character_name: str) -> list[Player]:
        """All players currently assigned to a character."""
        return [p for p in self.players if p.character_name == character_name]

    def assigned_characters(self) -> list[str]:
        return [p.character_name for p in self.players if p.character_name]
