"""RoundEngine - the round/phase state machine.

Round order:
    PENDING (lobby) -> 1 (introduction) -> 2 -> 3 -> 4 -> 5
    -> 5.5 (accusation) -> 6 (final statements) -> 7 (end)

The engine never touches the store. It inspects a SessionSnapshot,
checks guards, and returns plans (RoundTransition) or records that the
coordinator persists. Guards are recomputed from the snapshot on every
call; nothing is cached.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable
from pydantic import BaseModel, Field

from mystery.errors import (
    GameCompleted,
    GameNotStarted,
    GuardViolation,
    NotEnoughPlayers,
    SessionAlreadyStarted,
    SessionDeleted,
    SessionFull,
    ValidationError,
)
from mystery.models.rounds import NEXT_ROUND, RoundOrdinal
from mystery.models.session import (
    AccusationRecord,
    Player,
    ReadinessEntry,
    SessionAccusation,
    SessionSnapshot,
    SessionStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Result Types
# ============================================================================


class RoundTransition(BaseModel):
    """A validated move from one round to the next.

    session_changes and reset_player_ids must be persisted together:
    the round bump and the new round's readiness reset.
    """

    code: str
    from_round: RoundOrdinal
    to_round: RoundOrdinal
    status: SessionStatus
    session_changes: dict[str, Any]
    reset_player_ids: list[str] = Field(default_factory=list)

    @property
    def completes_game(self) -> bool:
        return self.to_round is RoundOrdinal.END


class AccusationStatus(BaseModel):
    """How many joined players have accused in the accusation round."""

    accused_count: int
    total: int
    waiting_on: list[str] = Field(default_factory=list)


class GameResults(BaseModel):
    """Outcome of the accusation round."""

    murderer_characters: list[str]
    correct_accusers: list[str]
    total_accusations: int
    correct_accusations: int


# ============================================================================
# Engine
# ============================================================================


class RoundEngine:
    """Computes legal transitions and readiness/accusation aggregates."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """Initialize the engine.

        Args:
            clock: Source of timestamps for transitions and records.
        """
        self._clock = clock

    # ------------------------------------------------------------------
    # Sequence
    # ------------------------------------------------------------------

    def next_round(self, current: RoundOrdinal) -> RoundOrdinal:
        """Canonical successor of `current`.

        Raises:
            GuardViolation: if `current` is the terminal round
        """
        successor = NEXT_ROUND.get(current)
        if successor is None:
            raise GuardViolation(f"Round {current.value} is terminal")
        return successor

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def players_not_ready(self, snapshot: SessionSnapshot, round_ordinal: RoundOrdinal) -> list[str]:
        return [p.identity for p in snapshot.players if not p.is_ready_for(round_ordinal)]

    def all_ready_for_round(self, snapshot: SessionSnapshot, round_ordinal: RoundOrdinal) -> bool:
        """True when every joined player (virtual included) is ready.

        A session with no players is never ready.
        """
        if not snapshot.players:
            return False
        return not self.players_not_ready(snapshot, round_ordinal)

    def players_without_accusation(self, snapshot: SessionSnapshot) -> list[str]:
        return [
            p.identity for p in snapshot.players
            if not p.has_accused_in(RoundOrdinal.ACCUSATION)
        ]

    def accusation_status(self, snapshot: SessionSnapshot) -> AccusationStatus:
        waiting = self.players_without_accusation(snapshot)
        return AccusationStatus(
            accused_count=snapshot.player_count - len(waiting),
            total=snapshot.player_count,
            waiting_on=waiting,
        )

    def vote_totals(
        self,
        snapshot: SessionSnapshot,
        candidates: Iterable[str] = (),
    ) -> dict[str, list[str]]:
        """Map accused character -> identities of its accusers.

        Only accusations tagged with the accusation round count. Every
        name in `candidates` appears in the result, even with no votes.
        A player who accuses the same character twice is listed twice.
        """
        totals: dict[str, list[str]] = {name: [] for name in candidates}
        for player in snapshot.players:
            for record in player.accusations_in(RoundOrdinal.ACCUSATION):
                totals.setdefault(record.accused_character, []).append(player.identity)
        return totals

    def tally_results(self, snapshot: SessionSnapshot, murderer_names: Iterable[str]) -> GameResults:
        """Score accusation-round accusations against the murderer list."""
        murderers = list(murderer_names)
        total = 0
        correct = 0
        correct_accusers: list[str] = []
        for player in snapshot.players:
            for record in player.accusations_in(RoundOrdinal.ACCUSATION):
                total += 1
                if record.accused_character in murderers:
                    correct += 1
                    if player.identity not in correct_accusers:
                        correct_accusers.append(player.identity)
        return GameResults(
            murderer_characters=murderers,
            correct_accusers=correct_accusers,
            total_accusations=total,
            correct_accusations=correct,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def plan_start(self, snapshot: SessionSnapshot) -> RoundTransition:
        """Plan PENDING -> INTRODUCTION.

        Raises:
            SessionDeleted: session was soft-deleted
            SessionAlreadyStarted: session is not in the lobby
            NotEnoughPlayers: fewer players than the script minimum
            SessionFull: more players than max_players (a stand-in must go)
        """
        session = snapshot.session
        if session.status is SessionStatus.DELETED:
            raise SessionDeleted(session.code)
        if session.status is not SessionStatus.LOBBY or session.current_round is not RoundOrdinal.PENDING:
            raise SessionAlreadyStarted(session.code)
        if snapshot.player_count < session.min_players:
            raise NotEnoughPlayers(session.code, have=snapshot.player_count, need=session.min_players)
        if snapshot.player_count > session.max_players:
            raise SessionFull(session.code, session.max_players)
        return self._transition(snapshot, RoundOrdinal.INTRODUCTION)

    def plan_advance(self, snapshot: SessionSnapshot) -> RoundTransition:
        """Plan a host-driven advance from the current round.

        Rounds 1-6 (except 5.5) need every joined player ready for the
        current round; 5.5 needs every joined player to have at least
        one accusation tagged 5.5.

        Raises:
            SessionDeleted, GameNotStarted, GameCompleted: wrong lifecycle state
            GuardViolation: guard unmet; waiting_on lists the blockers
        """
        session = snapshot.session
        self._require_in_progress(snapshot)
        current = session.current_round

        if not snapshot.players:
            raise GuardViolation(f"Session {session.code!r} has no players")

        if current is RoundOrdinal.ACCUSATION:
            waiting = self.players_without_accusation(snapshot)
            if waiting:
                raise GuardViolation(
                    f"Waiting for {len(waiting)} more player(s) to accuse",
                    waiting_on=waiting,
                )
        else:
            waiting = self.players_not_ready(snapshot, current)
            if waiting:
                raise GuardViolation(
                    f"Waiting for {len(waiting)} more player(s) to be ready for round {current.value}",
                    waiting_on=waiting,
                )

        return self._transition(snapshot, self.next_round(current))

    def _transition(self, snapshot: SessionSnapshot, to_round: RoundOrdinal) -> RoundTransition:
        session = snapshot.session
        now = self._clock()
        status = session.status
        changes: dict[str, Any] = {"current_round": to_round}

        if session.current_round is RoundOrdinal.PENDING:
            status = SessionStatus.IN_PROGRESS
            changes["status"] = status
            changes["started_at"] = now
        if to_round is RoundOrdinal.END:
            status = SessionStatus.COMPLETED
            changes["status"] = status
            changes["completed_at"] = now

        logger.debug(
            "Session %s: planned round %s -> %s",
            session.code, session.current_round.value, to_round.value,
        )
        return RoundTransition(
            code=session.code,
            from_round=session.current_round,
            to_round=to_round,
            status=status,
            session_changes=changes,
            reset_player_ids=[p.identity for p in snapshot.players],
        )

    def apply_transition(self, snapshot: SessionSnapshot, transition: RoundTransition) -> SessionSnapshot:
        """Return a copy of `snapshot` with the transition applied."""
        snapshot = snapshot.model_copy(deep=True)
        snapshot.session = snapshot.session.model_copy(update=transition.session_changes)
        reset = set(transition.reset_player_ids)
        for player in snapshot.players:
            if player.identity in reset:
                player.readiness[transition.to_round] = ReadinessEntry(ready=False)
        return snapshot

    # ------------------------------------------------------------------
    # Readiness and accusations
    # ------------------------------------------------------------------

    def check_readiness_update(
        self,
        snapshot: SessionSnapshot,
        identity: str,
        round_ordinal: RoundOrdinal,
    ) -> Player:
        """Validate a readiness write; returns the target player.

        Legal at any time for any joined player, but only for playable
        rounds the session has already reached.
        """
        session = snapshot.session
        if session.status is SessionStatus.DELETED:
            raise SessionDeleted(session.code)
        player = snapshot.require_player(identity)
        if round_ordinal is RoundOrdinal.PENDING:
            raise ValidationError("Readiness cannot be set for the lobby")
        if not round_ordinal.reached_by(session.current_round):
            raise ValidationError(
                f"Round {round_ordinal.value} has not been reached "
                f"(current round {session.current_round.value})"
            )
        return player

    def readiness_entry(self, ready: bool) -> ReadinessEntry:
        return ReadinessEntry(ready=ready, ready_at=self._clock() if ready else None)

    def build_accusation(
        self,
        snapshot: SessionSnapshot,
        identity: str,
        accused_character: str,
    ) -> tuple[AccusationRecord, SessionAccusation]:
        """Create the player-side and session-side accusation records.

        The accused name is not checked against the script; only an
        empty name is rejected. Accusations are tagged with the current
        round.

        Raises:
            ValidationError: empty accused name
            PlayerNotFound: identity not joined
            SessionDeleted, GameNotStarted, GameCompleted: wrong lifecycle state
        """
        accused = (accused_character or "").strip()
        if not accused:
            raise ValidationError("Accused character name must not be empty")
        self._require_in_progress(snapshot)
        player = snapshot.require_player(identity)

        now = self._clock()
        round_ordinal = snapshot.session.current_round
        record = AccusationRecord(round=round_ordinal, accused_character=accused, timestamp=now)
        aggregate = SessionAccusation(
            accuser_id=player.identity,
            accuser_character=player.character_name,
            accused_character=accused,
            round=round_ordinal,
            timestamp=now,
        )
        return record, aggregate

    def _require_in_progress(self, snapshot: SessionSnapshot) -> None:
        session = snapshot.session
        if session.status is SessionStatus.DELETED:
            raise SessionDeleted(session.code)
        if session.status is SessionStatus.LOBBY or session.current_round is RoundOrdinal.PENDING:
            raise GameNotStarted(session.code)
        if session.status is SessionStatus.COMPLETED or session.current_round.is_terminal:
            raise GameCompleted(session.code)
