"""Tests for round ordinals and the canonical round sequence."""

import pytest

from mystery.models.rounds import (
    NEXT_ROUND,
    ROUND_SEQUENCE,
    SCRIPTED_ROUNDS,
    RoundOrdinal,
    next_round,
)


class TestRoundSequence:
    """The sequence is fixed and non-contiguous."""

    def test_sequence_order(self) -> None:
        values = [r.value for r in ROUND_SEQUENCE]
        assert values == ["0", "1", "2", "3", "4", "5", "5.5", "6", "7"]

    def test_walk_from_pending_visits_every_round_once(self) -> None:
        """Following NEXT_ROUND from PENDING yields the whole sequence."""
        visited = [RoundOrdinal.PENDING]
        current = RoundOrdinal.PENDING
        while (current := next_round(current)) is not None:
            visited.append(current)
        assert tuple(visited) == ROUND_SEQUENCE

    def test_five_goes_to_accusation_not_six(self) -> None:
        assert NEXT_ROUND[RoundOrdinal.ROUND_5] is RoundOrdinal.ACCUSATION
        assert NEXT_ROUND[RoundOrdinal.ACCUSATION] is RoundOrdinal.FINAL_STATEMENTS

    def test_end_has_no_successor(self) -> None:
        assert RoundOrdinal.END not in NEXT_ROUND
        assert next_round(RoundOrdinal.END) is None
        assert RoundOrdinal.END.is_terminal

    def test_accusation_round_has_no_script_text(self) -> None:
        assert RoundOrdinal.ACCUSATION not in SCRIPTED_ROUNDS
        assert RoundOrdinal.PENDING not in SCRIPTED_ROUNDS
        assert len(SCRIPTED_ROUNDS) == 6


class TestRoundOrdinal:
    """Parsing, comparison and numeric views."""

    @pytest.mark.parametrize("raw, expected", [
        (5.5, RoundOrdinal.ACCUSATION),
        ("5.5", RoundOrdinal.ACCUSATION),
        (1, RoundOrdinal.INTRODUCTION),
        ("7", RoundOrdinal.END),
        (" 2 ", RoundOrdinal.ROUND_2),
        (6.0, RoundOrdinal.FINAL_STATEMENTS),
        (RoundOrdinal.ROUND_4, RoundOrdinal.ROUND_4),
    ])
    def test_parse_accepts_numbers_and_text(self, raw, expected) -> None:
        assert RoundOrdinal.parse(raw) is expected

    @pytest.mark.parametrize("raw", [8, 4.5, "five", "", True, -1])
    def test_parse_rejects_unknown(self, raw) -> None:
        with pytest.raises(ValueError):
            RoundOrdinal.parse(raw)

    def test_number_and_str(self) -> None:
        assert RoundOrdinal.ACCUSATION.number == 5.5
        assert str(RoundOrdinal.ACCUSATION) == "5.5"

    def test_reached_by_uses_sequence_position(self) -> None:
        current = RoundOrdinal.ACCUSATION
        assert RoundOrdinal.ROUND_5.reached_by(current)
        assert RoundOrdinal.ACCUSATION.reached_by(current)
        assert not RoundOrdinal.FINAL_STATEMENTS.reached_by(current)
        assert not RoundOrdinal.INTRODUCTION.reached_by(RoundOrdinal.PENDING)
