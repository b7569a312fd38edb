"""In-memory GameStateStore.

Behaves like a remote document store from the caller's point of view:
every call is a coroutine that yields to the event loop, reads return
copies, each document update is atomic, and subscribers receive a full
snapshot after every write. Used by tests and the command-line
simulator.
"""

import asyncio
import logging
from typing import Any, Optional

from pydantic import BaseModel

from mystery.errors import (
    PersistenceUnavailable,
    PlayerNotFound,
    SessionCodeTaken,
    SessionNotFound,
    ValidationError,
)
from mystery.models.rounds import RoundOrdinal
from mystery.models.session import (
    AccusationRecord,
    Player,
    ReadinessEntry,
    Session,
    SessionAccusation,
    SessionSnapshot,
    utc_now,
)
from mystery.store.base import (
    DedupingSubscriber,
    PlayerDelete,
    PlayerUpdate,
    ReadinessWrite,
    SessionUpdate,
    SnapshotCallback,
    Unsubscribe,
    WriteBatch,
)

logger = logging.getLogger(__name__)


class InMemoryGameStateStore:
    """GameStateStore backed by dicts.

    The store starts "not ready"; call connect() (optionally with a
    delay) to make it accept requests. set_available(False) simulates an
    unreachable backend: every request then raises
    PersistenceUnavailable.
    """

    def __init__(self, latency: float = 0.0, dedupe: bool = True):
        """Initialize the store.

        Args:
            latency: Seconds each request waits before answering.
            dedupe: Skip change-feed deliveries whose content (minus
                    volatile timestamps) is unchanged.
        """
        self._latency = latency
        self._dedupe = dedupe
        self._ready = asyncio.Event()
        self._available = True
        self._sessions: dict[str, Session] = {}
        self._players: dict[str, dict[str, Player]] = {}
        self._subscribers: dict[str, list[DedupingSubscriber]] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, delay: float = 0.0) -> None:
        """Mark the store ready, after an optional startup delay."""
        if delay > 0:
            await asyncio.sleep(delay)
        self._ready.set()
        logger.info("In-memory store ready")

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def set_available(self, available: bool) -> None:
        self._available = available

    async def wait_until_ready(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise PersistenceUnavailable(f"Store not ready after {timeout}s") from None

    async def _roundtrip(self) -> None:
        """Simulated network hop; checks reachability."""
        await asyncio.sleep(self._latency)
        if not self._ready.is_set():
            raise PersistenceUnavailable("Store is not initialized")
        if not self._available:
            raise PersistenceUnavailable("Store is unreachable")

    # ------------------------------------------------------------------
    # Internal accessors (no awaits, call under the lock)
    # ------------------------------------------------------------------

    def _session(self, code: str) -> Session:
        session = self._sessions.get(code)
        if session is None:
            raise SessionNotFound(code)
        return session

    def _player(self, code: str, identity: str) -> Player:
        self._session(code)
        player = self._players[code].get(identity)
        if player is None:
            raise PlayerNotFound(code, identity)
        return player

    def _snapshot(self, code: str) -> Optional[SessionSnapshot]:
        session = self._sessions.get(code)
        if session is None:
            return None
        players = sorted(self._players[code].values(), key=lambda p: p.joined_at)
        return SessionSnapshot(
            session=session.model_copy(deep=True),
            players=[p.model_copy(deep=True) for p in players],
        )

    def _apply_session_changes(self, code: str, changes: dict[str, Any]) -> None:
        _check_fields(Session, "session", changes)
        session = self._session(code)
        self._sessions[code] = session.model_copy(update={**changes, "updated_at": utc_now()})

    def _apply_player_changes(self, code: str, identity: str, changes: dict[str, Any]) -> None:
        _check_fields(Player, "player", changes)
        player = self._player(code, identity)
        self._players[code][identity] = player.model_copy(update={**changes, "last_active_at": utc_now()})

    def _apply_readiness(self, code: str, identity: str, round_ordinal: RoundOrdinal, entry: ReadinessEntry) -> None:
        player = self._player(code, identity)
        readiness = dict(player.readiness)
        readiness[round_ordinal] = entry.model_copy()
        self._players[code][identity] = player.model_copy(
            update={"readiness": readiness, "last_active_at": utc_now()}
        )

    def _publish(self, code: str) -> None:
        snapshot = self._snapshot(code)
        if snapshot is None:
            return
        for subscriber in list(self._subscribers.get(code, [])):
            try:
                subscriber.deliver(snapshot)
            except Exception:
                logger.exception("Subscriber for session %s raised", code)

    # ------------------------------------------------------------------
    # Session documents
    # ------------------------------------------------------------------

    async def session_exists(self, code: str) -> bool:
        await self._roundtrip()
        return code in self._sessions

    async def create_session(self, session: Session) -> None:
        await self._roundtrip()
        async with self._lock:
            if session.code in self._sessions:
                raise SessionCodeTaken(session.code)
            self._sessions[session.code] = session.model_copy(deep=True)
            self._players[session.code] = {}
            self._publish(session.code)

    async def update_session(self, code: str, changes: dict[str, Any]) -> None:
        await self._roundtrip()
        async with self._lock:
            self._apply_session_changes(code, changes)
            self._publish(code)

    async def append_session_accusation(self, code: str, accusation: SessionAccusation) -> None:
        await self._roundtrip()
        async with self._lock:
            session = self._session(code)
            accusations = [*session.accusations, accusation.model_copy()]
            self._apply_session_changes(code, {"accusations": accusations})
            self._publish(code)

    # ------------------------------------------------------------------
    # Player records
    # ------------------------------------------------------------------

    async def put_player(self, code: str, player: Player) -> None:
        await self._roundtrip()
        async with self._lock:
            self._session(code)
            self._players[code][player.identity] = player.model_copy(deep=True)
            self._publish(code)

    async def update_player(self, code: str, identity: str, changes: dict[str, Any]) -> None:
        await self._roundtrip()
        async with self._lock:
            self._apply_player_changes(code, identity, changes)
            self._publish(code)

    async def set_readiness(
        self,
        code: str,
        identity: str,
        round_ordinal: RoundOrdinal,
        entry: ReadinessEntry,
    ) -> None:
        await self._roundtrip()
        async with self._lock:
            self._apply_readiness(code, identity, round_ordinal, entry)
            self._publish(code)

    async def append_player_accusation(self, code: str, identity: str, record: AccusationRecord) -> None:
        await self._roundtrip()
        async with self._lock:
            player = self._player(code, identity)
            self._apply_player_changes(
                code, identity, {"accusations_made": [*player.accusations_made, record.model_copy()]}
            )
            self._publish(code)

    async def delete_player(self, code: str, identity: str) -> None:
        await self._roundtrip()
        async with self._lock:
            self._player(code, identity)
            del self._players[code][identity]
            self._publish(code)

    # ------------------------------------------------------------------
    # Snapshots, batches and the change feed
    # ------------------------------------------------------------------

    async def load_snapshot(self, code: str) -> Optional[SessionSnapshot]:
        await self._roundtrip()
        return self._snapshot(code)

    async def commit(self, code: str, batch: WriteBatch) -> None:
        """Apply every operation of the batch, then publish once.

        Every target is checked before the first write, so a batch that
        names a missing player or an unknown field changes nothing.
        """
        await self._roundtrip()
        async with self._lock:
            self._session(code)
            deleted: set[str] = set()
            for op in batch.operations:
                if isinstance(op, SessionUpdate):
                    _check_fields(Session, "session", op.changes)
                    continue
                self._player(code, op.identity)
                if op.identity in deleted:
                    raise PlayerNotFound(code, op.identity)
                if isinstance(op, PlayerUpdate):
                    _check_fields(Player, "player", op.changes)
                elif isinstance(op, PlayerDelete):
                    deleted.add(op.identity)

            for op in batch.operations:
                if isinstance(op, SessionUpdate):
                    self._apply_session_changes(code, op.changes)
                elif isinstance(op, ReadinessWrite):
                    self._apply_readiness(code, op.identity, op.round, op.entry)
                elif isinstance(op, PlayerUpdate):
                    self._apply_player_changes(code, op.identity, op.changes)
                elif isinstance(op, PlayerDelete):
                    del self._players[code][op.identity]
            self._publish(code)

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        """Register a callback; it receives the current snapshot right away."""
        subscriber = DedupingSubscriber(callback) if self._dedupe else _PassThroughSubscriber(callback)
        self._subscribers.setdefault(code, []).append(subscriber)

        snapshot = self._snapshot(code)
        if snapshot is not None:
            subscriber.deliver(snapshot)

        def unsubscribe() -> None:
            subscribers = self._subscribers.get(code, [])
            if subscriber in subscribers:
                subscribers.remove(subscriber)

        return unsubscribe


class _PassThroughSubscriber(DedupingSubscriber):
    """Delivers every snapshot, changed or not."""

    def deliver(self, snapshot: SessionSnapshot) -> bool:
        self._callback(snapshot)
        return True


def _check_fields(model: type[BaseModel], kind: str, changes: dict[str, Any]) -> None:
    unknown = set(changes) - set(model.model_fields)
    if unknown:
        raise ValidationError(f"Unknown {kind} fields: {sorted(unknown)}")
