"""SessionCoordinator - session lifecycle on top of the store and engine.

Every operation follows the same shape: load the current snapshot from
the store, let the RoundEngine validate and compute the change, write it
back. Subscribed clients then receive the new snapshot through the
store's change feed.
"""

import logging
import uuid
from typing import Callable, Optional

from mystery.catalog import GameScriptCatalog
from mystery.config import Settings
from mystery.engine.round_engine import (
    AccusationStatus,
    GameResults,
    RoundEngine,
    RoundTransition,
)
from mystery.engine.session_codes import SessionCodeGenerator
from mystery.engine.validator import SessionValidator
from mystery.errors import (
    CharacterNotFound,
    CharacterTaken,
    CodeGenerationExhausted,
    GuardViolation,
    NotHost,
    PersistenceError,
    PersistenceUnavailable,
    ScriptUnavailable,
    SessionAlreadyStarted,
    SessionDeleted,
    SessionFull,
    SessionNotFound,
    ValidationError,
)
from mystery.models.rounds import RoundOrdinal
from mystery.models.session import (
    AccusationRecord,
    Player,
    Session,
    SessionSnapshot,
    SessionStatus,
    utc_now,
)
from mystery.store import GameStateStore, SnapshotCallback, Unsubscribe, WriteBatch

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """Orchestrates creation, joining, character assignment and rounds.

    The store client is injected; the coordinator holds no session state
    of its own between calls.
    """

    def __init__(
        self,
        store: GameStateStore,
        catalog: GameScriptCatalog,
        engine: Optional[RoundEngine] = None,
        code_factory: Optional[Callable[[], str]] = None,
        settings: Optional[Settings] = None,
        validator: Optional[SessionValidator] = None,
    ):
        """Initialize the coordinator.

        Args:
            store: Persistence for sessions and players.
            catalog: Script reference data.
            engine: Round state machine (a default one is created).
            code_factory: Produces candidate session codes.
            settings: Timeouts and retry caps (defaults if None).
            validator: Optional hook run after every round transition.
        """
        self._store = store
        self._catalog = catalog
        self._engine = engine or RoundEngine()
        self._code_factory = code_factory or SessionCodeGenerator()
        self._settings = settings or Settings()
        self._validator = validator

    @property
    def engine(self) -> RoundEngine:
        return self._engine

    @property
    def catalog(self) -> GameScriptCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    async def _load(self, code: str) -> SessionSnapshot:
        snapshot = await self._store.load_snapshot(code)
        if snapshot is None:
            raise SessionNotFound(code)
        return snapshot

    async def _load_active(self, code: str) -> SessionSnapshot:
        """Load a session that has not been soft-deleted."""
        snapshot = await self._load(code)
        if snapshot.session.status is SessionStatus.DELETED:
            raise SessionDeleted(code)
        return snapshot

    async def get_snapshot(self, code: str) -> SessionSnapshot:
        return await self._load(code)

    def subscribe(self, code: str, callback: SnapshotCallback) -> Unsubscribe:
        return self._store.subscribe(code, callback)

    # ------------------------------------------------------------------
    # Creation and membership
    # ------------------------------------------------------------------

    async def create_session(self, host_id: str, host_name: str, script_id: str) -> str:
        """Create a session and auto-join its host.

        The session document and the host record are two writes. If the
        store fails between them the session is left in the lobby with
        no host player, which validate_session_state reports; the host
        retries with a fresh code.

        Returns:
            The new session code

        Raises:
            ValidationError: empty host id/name
            ScriptNotFound: unknown script id
            ScriptUnavailable: script not playable yet
            PersistenceUnavailable: store not ready or unreachable
            CodeGenerationExhausted: every candidate code was taken
            SessionCodeTaken: another client created the same code after
                the uniqueness check (nothing was written)
        """
        if not host_id or not host_name.strip():
            raise ValidationError("Host id and name must not be empty")
        script = self._catalog.require_script(script_id)
        if not script.metadata.is_active:
            raise ScriptUnavailable(script_id, script.metadata.status)

        await self._store.wait_until_ready(self._settings.store_ready_timeout)
        code = await self._generate_unique_code()

        session = Session(
            code=code,
            script_id=script.script_id,
            host_id=host_id,
            min_players=script.game_flow.min_players,
            max_players=script.game_flow.max_players,
        )
        await self._store.create_session(session)
        await self._store.put_player(
            code, Player(identity=host_id, display_name=host_name.strip(), is_host=True)
        )
        logger.info("Session %s created by %s with script %s", code, host_id, script_id)
        return code

    async def _generate_unique_code(self) -> str:
        """Draw codes until one is unused.

        The existence probe is an idempotent read, so a store failure
        during the probe counts as a spent attempt and is retried.
        """
        attempts = self._settings.code_attempts
        last_error: Optional[PersistenceError] = None
        failures = 0

        for attempt in range(1, attempts + 1):
            code = self._code_factory()
            try:
                exists = await self._store.session_exists(code)
            except PersistenceError as exc:
                failures += 1
                last_error = exc
                logger.warning("Attempt %d/%d: store error while checking code: %s", attempt, attempts, exc)
                continue
            if not exists:
                return code
            logger.info("Attempt %d/%d: session code %s already in use", attempt, attempts, code)

        if failures == attempts:
            raise PersistenceUnavailable(
                f"Store failed on all {attempts} code checks"
            ) from last_error
        raise CodeGenerationExhausted(attempts)

    async def join_session(self, code: str, identity: str, name: str) -> SessionSnapshot:
        """Join a session; re-joining returns the current state.

        Raises:
            SessionNotFound: unknown or soft-deleted session
            SessionAlreadyStarted: session left the lobby
            SessionFull: max_players real players already joined
        """
        if not identity or not name.strip():
            raise ValidationError("Player id and name must not be empty")
        snapshot = await self._load(code)
        if snapshot.session.status is SessionStatus.DELETED:
            raise SessionNotFound(code)
        if snapshot.player(identity) is not None:
            return snapshot
        if snapshot.session.status is not SessionStatus.LOBBY:
            raise SessionAlreadyStarted(code)
        if snapshot.real_player_count >= snapshot.session.max_players:
            raise SessionFull(code, snapshot.session.max_players)

        await self._store.put_player(code, Player(identity=identity, display_name=name.strip()))
        logger.info("Player %s joined session %s", identity, code)
        return await self._load(code)

    async def leave_session(self, code: str, identity: str) -> None:
        """Remove a non-host player (hard delete)."""
        snapshot = await self._load_active(code)
        player = snapshot.require_player(identity)
        if player.is_host:
            raise ValidationError("The host cannot leave; delete the session instead")
        await self._store.delete_player(code, identity)
        logger.info("Player %s left session %s", identity, code)

    async def soft_delete_session(self, code: str, requester_id: str) -> None:
        """Flag the session as DELETED (host only). Repeating is a no-op."""
        snapshot = await self._load(code)
        session = snapshot.session
        if requester_id != session.host_id:
            raise NotHost(code, requester_id)
        if session.status is SessionStatus.DELETED:
            return
        await self._store.update_session(
            code, {"status": SessionStatus.DELETED, "deleted_at": utc_now()}
        )
        logger.info("Session %s deleted by host", code)

    async def mark_introduction_shown(self, code: str) -> None:
        await self._load_active(code)
        await self._store.update_session(code, {"introduction_shown": True})

    # ------------------------------------------------------------------
    # Characters and virtual players
    # ------------------------------------------------------------------

    async def assign_character(self, code: str, identity: str, character_name: str) -> SessionSnapshot:
        """Assign a character, displacing a virtual player who holds it.

        Real players may join past max_players while stand-ins fill the
        roster. When such a player takes a free character, the most
        recently added stand-in makes room so the session is back within
        max_players. The displacement and the assignment are one batch.

        Raises:
            PlayerNotFound: identity has no membership record
            CharacterNotFound: name not in the session's script
            CharacterTaken: another real player holds the character
            SessionFull: over capacity with no stand-in left to remove
        """
        snapshot = await self._load_active(code)
        player = snapshot.require_player(identity)
        session = snapshot.session
        character = self._catalog.get_character_by_name(session.script_id, character_name)
        if character is None:
            raise CharacterNotFound(session.script_id, character_name)

        others = [p for p in snapshot.holders_of(character_name) if p.identity != identity]
        real_holders = [p for p in others if not p.is_virtual]
        if real_holders:
            raise CharacterTaken(character_name, real_holders[0].identity)
        if others and player.is_virtual:
            raise CharacterTaken(character_name, others[0].identity)

        displaced = list(others)
        remaining = snapshot.player_count - len(displaced)
        if remaining > session.max_players:
            taken = {identity, *(p.identity for p in displaced)}
            spare = [p for p in snapshot.players if p.is_virtual and p.identity not in taken]
            if not spare:
                raise SessionFull(code, session.max_players)
            displaced.append(spare[-1])

        batch = WriteBatch()
        for stand_in in displaced:
            batch.delete_player(stand_in.identity)
        batch.update_player(
            identity,
            character_name=character.character_name,
            is_murderer=character.is_murderer,
        )
        await self._store.commit(code, batch)

        for stand_in in displaced:
            logger.info(
                "Session %s: virtual player %s (%r) displaced by %s",
                code, stand_in.identity, stand_in.character_name, identity,
            )
        return await self._load(code)

    async def add_virtual_player(self, code: str, character_name: str) -> Player:
        """Add a host-controlled stand-in holding `character_name`."""
        snapshot = await self._load_active(code)
        session = snapshot.session
        if session.status is not SessionStatus.LOBBY:
            raise SessionAlreadyStarted(code)
        character = self._catalog.get_character_by_name(session.script_id, character_name)
        if character is None:
            raise CharacterNotFound(session.script_id, character_name)
        holders = snapshot.holders_of(character_name)
        if holders:
            raise CharacterTaken(character_name, holders[0].identity)
        if snapshot.player_count >= session.max_players:
            raise SessionFull(code, session.max_players)

        player = Player(
            identity=f"virtual-{uuid.uuid4().hex[:12]}",
            display_name=character.character_name,
            is_virtual=True,
            character_name=character.character_name,
            is_murderer=character.is_murderer,
        )
        await self._store.put_player(code, player)
        logger.info("Session %s: virtual player %s added as %r", code, player.identity, character_name)
        return player

    async def remove_virtual_player(self, code: str, identity: str) -> None:
        snapshot = await self._load_active(code)
        player = snapshot.require_player(identity)
        if not player.is_virtual:
            raise ValidationError(f"Player {identity!r} is not a virtual player")
        await self._store.delete_player(code, identity)
        logger.info("Session %s: virtual player %s removed", code, identity)

    async def fill_with_virtual_players(self, code: str) -> list[Player]:
        """Add a virtual player for each free character, up to max_players."""
        snapshot = await self._load_active(code)
        session = snapshot.session
        free = self._catalog.get_available_characters(
            session.script_id, snapshot.assigned_characters()
        )
        room = session.max_players - snapshot.player_count
        added: list[Player] = []
        for character in free[:max(room, 0)]:
            added.append(await self.add_virtual_player(code, character.character_name))
        return added

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    async def start_game(self, code: str) -> SessionSnapshot:
        """Move the session from the lobby to round 1.

        Raises:
            NotEnoughPlayers: below the script minimum
            SessionAlreadyStarted: not in the lobby
        """
        snapshot = await self._load(code)
        transition = self._engine.plan_start(snapshot)
        return await self._commit_transition(transition, self._engine.plan_start)

    async def advance_round(self, code: str) -> SessionSnapshot:
        """Advance to the next round if the current round's guard holds.

        Raises:
            GuardViolation: players not ready / not accused (state unchanged)
        """
        snapshot = await self._load(code)
        transition = self._engine.plan_advance(snapshot)
        return await self._commit_transition(transition, self._engine.plan_advance)

    async def _commit_transition(
        self,
        transition: RoundTransition,
        planner: Callable[[SessionSnapshot], RoundTransition],
    ) -> SessionSnapshot:
        """Re-check the guard on a fresh read, then write the transition.

        The re-read narrows (but cannot close) the window in which two
        devices both pass the guard.
        """
        code = transition.code
        fresh = await self._load(code)
        if fresh.session.current_round is not transition.from_round:
            raise GuardViolation(
                f"Session {code!r} moved to round {fresh.session.current_round.value} "
                f"while advancing from {transition.from_round.value}"
            )
        transition = planner(fresh)

        batch = WriteBatch().update_session(**transition.session_changes)
        for identity in transition.reset_player_ids:
            batch.set_readiness(identity, transition.to_round, self._engine.readiness_entry(False))
        await self._store.commit(code, batch)

        logger.info(
            "Session %s: round %s -> %s",
            code, transition.from_round.value, transition.to_round.value,
        )
        if transition.completes_game:
            logger.info("Session %s completed", code)

        snapshot = await self._load(code)
        if self._validator:
            await self._validator.on_transition(transition, snapshot)
        return snapshot

    async def set_ready(
        self,
        code: str,
        identity: str,
        round_ordinal: Optional[RoundOrdinal] = None,
        ready: bool = True,
    ) -> None:
        """Write one player's readiness for a round (default: current round).

        Never triggers a transition. The host may call this on behalf of
        any player to force or override readiness.
        """
        snapshot = await self._load(code)
        target_round = round_ordinal or snapshot.session.current_round
        self._engine.check_readiness_update(snapshot, identity, target_round)
        await self._store.set_readiness(
            code, identity, target_round, self._engine.readiness_entry(ready)
        )

    async def submit_accusation(self, code: str, identity: str, accused_character: str) -> AccusationRecord:
        """Record an accusation on the player and in the session aggregate.

        The two writes are independent; a failure between them leaves the
        player record without its aggregate entry.
        """
        snapshot = await self._load(code)
        record, aggregate = self._engine.build_accusation(snapshot, identity, accused_character)
        await self._store.append_player_accusation(code, identity, record)
        await self._store.append_session_accusation(code, aggregate)
        logger.info(
            "Session %s: %s accused %r in round %s",
            code, identity, record.accused_character, record.round.value,
        )
        return record

    # ------------------------------------------------------------------
    # Read-side queries
    # ------------------------------------------------------------------

    async def all_ready_for_round(self, code: str, round_ordinal: Optional[RoundOrdinal] = None) -> bool:
        snapshot = await self._load(code)
        return self._engine.all_ready_for_round(
            snapshot, round_ordinal or snapshot.session.current_round
        )

    async def accusation_status(self, code: str) -> AccusationStatus:
        return self._engine.accusation_status(await self._load(code))

    async def vote_totals(self, code: str) -> dict[str, list[str]]:
        """Accusation-round votes, with every script character listed."""
        snapshot = await self._load(code)
        candidates = [c.character_name for c in self._catalog.get_characters(snapshot.session.script_id)]
        return self._engine.vote_totals(snapshot, candidates)

    async def results(self, code: str) -> GameResults:
        snapshot = await self._load(code)
        murderers = [
            c.character_name
            for c in self._catalog.get_murderer_characters(snapshot.session.script_id)
        ]
        return self._engine.tally_results(snapshot, murderers)
