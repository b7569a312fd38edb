"""Tests for session state-consistency validation (S.1-S.7)."""

import pytest

from mystery.engine import NoOpValidator, RoundEngine, StrictValidator, create_validator, CollectingValidator
from mystery.models import (
    AccusationRecord,
    Player,
    ReadinessEntry,
    RoundOrdinal,
    Session,
    SessionAccusation,
    SessionSnapshot,
    SessionStatus,
)
from mystery.validation import (
    InvariantViolationError,
    ValidationResult,
    ValidationSeverity,
    ValidationViolation,
    assert_session_state,
    validate_session_state,
)


def make_snapshot(
    status: SessionStatus = SessionStatus.IN_PROGRESS,
    current: RoundOrdinal = RoundOrdinal.ROUND_2,
    players: list = None,
    accusations: list = None,
    max_players: int = 4,
) -> SessionSnapshot:
    session = Session(
        code="ABC123",
        script_id="mansion",
        host_id="host",
        min_players=2,
        max_players=max_players,
        status=status,
        current_round=current,
        accusations=accusations or [],
    )
    if players is None:
        players = [
            Player(identity="host", display_name="Host", is_host=True, character_name="Miss Scarlet"),
            Player(identity="guest", display_name="Guest", character_name="Mrs White"),
        ]
    return SessionSnapshot(session=session, players=players)


def rule_ids(snapshot: SessionSnapshot) -> set[str]:
    return {v.rule_id for v in validate_session_state(snapshot).violations}


class TestRules:
    """One failing snapshot per rule."""

    def test_valid_snapshot(self) -> None:
        result = validate_session_state(make_snapshot())
        assert result.is_valid
        assert result.violations == []

    def test_completed_without_end(self) -> None:
        assert "S.1" in rule_ids(make_snapshot(status=SessionStatus.COMPLETED, current=RoundOrdinal.ROUND_5))

    def test_end_without_completed(self) -> None:
        assert "S.1" in rule_ids(make_snapshot(status=SessionStatus.IN_PROGRESS, current=RoundOrdinal.END))

    def test_lobby_past_pending(self) -> None:
        assert "S.2" in rule_ids(make_snapshot(status=SessionStatus.LOBBY, current=RoundOrdinal.INTRODUCTION))

    def test_readiness_for_unreached_round(self) -> None:
        snapshot = make_snapshot()
        snapshot.players[1].readiness[RoundOrdinal.ROUND_4] = ReadinessEntry(ready=True)
        assert rule_ids(snapshot) == {"S.3"}

    def test_two_real_players_one_character(self) -> None:
        snapshot = make_snapshot()
        snapshot.players[1].character_name = "Miss Scarlet"
        assert rule_ids(snapshot) == {"S.4"}

    def test_virtual_duplicate_is_allowed(self) -> None:
        snapshot = make_snapshot()
        snapshot.players.append(
            Player(identity="v1", display_name="V", is_virtual=True, character_name="Miss Scarlet")
        )
        assert rule_ids(snapshot) == set()

    def test_over_capacity(self) -> None:
        assert "S.5" in rule_ids(make_snapshot(max_players=1))

    def test_host_mismatch(self) -> None:
        snapshot = make_snapshot()
        snapshot.players[0].is_host = False
        assert rule_ids(snapshot) == {"S.6"}
        snapshot.players[0].is_host = True
        snapshot.players[1].is_host = True
        assert rule_ids(snapshot) == {"S.6"}

    def test_aggregate_accusation_without_player_record(self) -> None:
        accusation = SessionAccusation(accuser_id="guest", accused_character="Miss Scarlet", round=RoundOrdinal.ACCUSATION)
        snapshot = make_snapshot(current=RoundOrdinal.ACCUSATION, accusations=[accusation])
        assert rule_ids(snapshot) == {"S.7"}

        snapshot.players[1].accusations_made.append(
            AccusationRecord(round=RoundOrdinal.ACCUSATION, accused_character="Miss Scarlet")
        )
        assert rule_ids(snapshot) == set()

    def test_accusation_by_departed_player_ignored(self) -> None:
        accusation = SessionAccusation(accuser_id="gone", accused_character="Mrs White", round=RoundOrdinal.ACCUSATION)
        assert rule_ids(make_snapshot(current=RoundOrdinal.ACCUSATION, accusations=[accusation])) == set()


class TestResultTypes:
    """ValidationResult and InvariantViolationError behaviour."""

    def test_warnings_do_not_invalidate(self) -> None:
        warning = ValidationViolation(rule_id="X", category="c", message="m", severity=ValidationSeverity.WARNING)
        result = ValidationResult(violations=[warning])
        assert result.is_valid
        assert bool(result)

    def test_results_merge(self) -> None:
        a = validate_session_state(make_snapshot(max_players=1))
        b = validate_session_state(make_snapshot(status=SessionStatus.LOBBY))
        merged = a + b
        assert len(merged.violations) == len(a.violations) + len(b.violations)
        assert not merged

    def test_assert_session_state_raises(self) -> None:
        with pytest.raises(InvariantViolationError) as exc_info:
            assert_session_state(make_snapshot(max_players=1))
        error = exc_info.value
        assert error.code == "ABC123"
        assert str(error).splitlines()[0] == "Session 'ABC123' is inconsistent: S.5"
        assert "S.5 [Capacity]" in str(error)
        assert_session_state(make_snapshot())

    def test_result_lists_errors_and_rule_ids(self) -> None:
        warning = ValidationViolation(rule_id="X", category="c", message="m", severity=ValidationSeverity.WARNING)
        result = validate_session_state(make_snapshot(max_players=1)) + ValidationResult(violations=[warning])
        assert result.rule_ids == ["S.5", "X"]
        assert [v.rule_id for v in result.errors] == ["S.5"]


class TestValidators:
    """Transition hooks."""

    def _transition_and_snapshot(self, max_players: int = 4):
        snapshot = make_snapshot(
            current=RoundOrdinal.ROUND_2,
            max_players=max_players,
            players=[
                Player(identity="host", display_name="Host", is_host=True,
                       readiness={RoundOrdinal.ROUND_2: ReadinessEntry(ready=True)}),
                Player(identity="guest", display_name="Guest",
                       readiness={RoundOrdinal.ROUND_2: ReadinessEntry(ready=True)}),
            ],
        )
        engine = RoundEngine()
        transition = engine.plan_advance(snapshot)
        return transition, engine.apply_transition(snapshot, transition)

    @pytest.mark.asyncio
    async def test_collecting_validator(self) -> None:
        validator = CollectingValidator()
        transition, snapshot = self._transition_and_snapshot(max_players=1)
        await validator.on_transition(transition, snapshot)
        assert validator.transitions_checked == 1
        assert [v.rule_id for v in validator.get_violations()] == ["S.5"]

    @pytest.mark.asyncio
    async def test_strict_validator_raises(self) -> None:
        transition, snapshot = self._transition_and_snapshot(max_players=1)
        with pytest.raises(InvariantViolationError):
            await StrictValidator().on_transition(transition, snapshot)

    @pytest.mark.asyncio
    async def test_noop_validator(self) -> None:
        transition, snapshot = self._transition_and_snapshot(max_players=1)
        await NoOpValidator().on_transition(transition, snapshot)

    def test_create_validator(self) -> None:
        assert isinstance(create_validator("none"), NoOpValidator)
        assert isinstance(create_validator("collect"), CollectingValidator)
        assert isinstance(create_validator("strict"), StrictValidator)
        with pytest.raises(ValueError):
            create_validator("loud")
