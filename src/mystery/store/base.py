"""GameStateStore contract shared by every store implementation.

The store is the only shared resource between clients. It offers
per-document atomic updates, a write batch for multi-document changes,
and a change feed that delivers full Session+Players snapshots.
"""

from typing import Any, Callable, Optional, Protocol, Union
from pydantic import BaseModel, Field

from mystery.models.rounds import RoundOrdinal
from mystery.models.session import (
    AccusationRecord,
    Player,
    ReadinessEntry,
    Session,
    SessionAccusation,
    SessionSnapshot,
)

SnapshotCallback = Callable[[SessionSnapshot], None]
Unsubscribe = Callable[[], None]

# Timestamps that change on every write and carry no game meaning
VOLATILE_SESSION_FIELDS = frozenset({"created_at", "updated_at", "started_at", "completed_at"})
VOLATILE_PLAYER_FIELDS = frozenset({"joined_at", "last_active_at"})


# ============================================================================
# Write Batch
# ============================================================================


class SessionUpdate(BaseModel):
    """Field-level update of the session document."""

    changes: dict[str, Any]


class ReadinessWrite(BaseModel):
    """Set one player's readiness entry for one round."""

    identity: str
    round: RoundOrdinal
    entry: ReadinessEntry


class PlayerUpdate(BaseModel):
    """Field-level update of one player record."""

    identity: str
    changes: dict[str, Any]


class PlayerDelete(BaseModel):
    """Hard-delete a player record."""

    identity: str


BatchOperation = Union[SessionUpdate, ReadinessWrite, PlayerUpdate, PlayerDelete]


class WriteBatch(BaseModel):
    """Ordered group of writes against one session.

    Stores that support it commit the batch atomically and publish a
    single snapshot afterwards. A store without multi-document
    transactions applies the writes one by one, in order.
    """

    operations: list[BatchOperation] = Field(default_factory=list)

    def update_session(self, **changes: Any) -> "WriteBatch":
        self.operations.append(SessionUpdate(changes=changes))
        return self

    def set_readiness(self, identity: str, round_ordinal: RoundOrdinal, entry: ReadinessEntry) -> "WriteBatch":
        self.operations.append(ReadinessWrite(identity=identity, round=round_ordinal, entry=entry))
        return self

    def update_player(self, identity: str, **changes: Any) -> "WriteBatch":
        self.operations.append(PlayerUpdate(identity=identity, changes=changes))
        return self

    def delete_player(self, identity: str) -> "WriteBatch":
        self.operations.append(PlayerDelete(identity=identity))
        return self

    def __len__(self) -> int:
        return len(self.operations)


# ============================================================================
# Store Protocol
# ============================================================================


class GameStateStore(Protocol):
    """Async persistence interface used by the SessionCoordinator.

    All methods suspend the caller until the store answers. Any of them
    may raise PersistenceUnavailable when the store cannot be reached.
    Writes against a missing session raise SessionNotFound; player
    writes against a missing player raise PlayerNotFound. Writes naming
    a field the record does not have raise ValidationError.
    """

    async def wait_until_ready(self, timeout: float) -> None:
        """Wait until the store accepts requests, or raise PersistenceUnavailable."""
        ...

    async def session_exists(self, code: str) -> bool:
        ...

    async def create_session(self, session: Session) -> None:
        """Persist a new session document; raises SessionCodeTaken if the code is in use."""
        ...

    async def update_session(self, code: str, changes: dict[str, Any]) -> None:
        ...

    async def append_session_accusation(self, code: str, accusation: SessionAccusation) -> None:
        ...

    async def put_player(self, code: str, player: Player) -> None:
        """Create or replace a player record."""
        ...

    async def update_player(self, code: str, identity: str, changes: dict[str, Any]) -> None:
        ...

    async def set_readiness(
        self,
        code: str,
        identity: str,
        round_ordinal: RoundOrdinal,
        entry: ReadinessEntry,
    ) -> None:
        ...

    async def append_player_accusation(self, code: str, identity: str, record: AccusationRecord) -> None:
        ...

    async def delete_player(self, code: str, identity: str) -> None:
        ...

    async def load_snapshot(self, code: str) -> Optional[SessionSnapshot]:
        """Session plus all players, or None if the session is absent."""
        ...

    async def commit(self, code: str, batch: WriteBatch) -> None:
        ...

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        """Register for full snapshots after every write to the session."""
        ...


# ============================================================================
# Change-feed helpers
# ============================================================================


def strip_volatile_fields(snapshot: SessionSnapshot) -> dict[str, Any]:
    """Snapshot as plain data without write timestamps, for equality checks."""
    return {
        "session": snapshot.session.model_dump(mode="json", exclude=set(VOLATILE_SESSION_FIELDS)),
        "players": [
            player.model_dump(mode="json", exclude=set(VOLATILE_PLAYER_FIELDS))
            for player in snapshot.players
        ],
    }


class DedupingSubscriber:
    """Wraps a callback and skips snapshots that did not really change.

    Two snapshots are the same when they are equal after dropping the
    volatile timestamp fields.
    """

    def __init__(self, callback: SnapshotCallback):
        self._callback = callback
        self._last: Optional[dict[str, Any]] = None

    def deliver(self, snapshot: SessionSnapshot) -> bool:
        """Forward the snapshot if it differs from the last one.

        Returns:
            True if the callback was invoked
        """
        stripped = strip_volatile_fields(snapshot)
        if stripped == self._last:
            return False
        self._last = stripped
        self._callback(snapshot)
        return True
