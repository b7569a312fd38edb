"""Round ordinals and the canonical round sequence.

The sequence is not contiguous: after round 5 the game moves to the
accusation phase (5.5), then to final statements (6) and the end (7).
Successors always come from NEXT_ROUND, never from arithmetic.
"""

from enum import Enum
from typing import Optional, Union


class RoundOrdinal(str, Enum):
    """Position of a session in the fixed phase sequence."""

    PENDING = "0"  # lobby, before the host starts the game
    INTRODUCTION = "1"
    ROUND_2 = "2"
    ROUND_3 = "3"
    ROUND_4 = "4"
    ROUND_5 = "5"
    ACCUSATION = "5.5"
    FINAL_STATEMENTS = "6"
    END = "7"

    @property
    def number(self) -> float:
        """Numeric ordinal as stored by the original clients (e.g. 5.5)."""
        return float(self.value)

    @property
    def position(self) -> int:
        """Index in ROUND_SEQUENCE, used for ordering comparisons."""
        return ROUND_SEQUENCE.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is RoundOrdinal.END

    def reached_by(self, current: "RoundOrdinal") -> bool:
        """True if a session at `current` has already reached this round."""
        return self.position <= current.position

    @classmethod
    def parse(cls, value: Union["RoundOrdinal", str, int, float]) -> "RoundOrdinal":
        """Convert a numeric or textual ordinal into a RoundOrdinal.

        Accepts 5.5, "5.5", 5, "5" and enum members. Anything else
        raises ValueError.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown round ordinal: {value!r}")
        if isinstance(value, (int, float)):
            member = _BY_NUMBER.get(float(value))
            if member is None:
                raise ValueError(f"Unknown round ordinal: {value!r}")
            return member
        text = str(value).strip()
        try:
            return _BY_NUMBER[float(text)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown round ordinal: {value!r}") from None

    def __str__(self) -> str:
        return self.value


ROUND_SEQUENCE: tuple[RoundOrdinal, ...] = (
    RoundOrdinal.PENDING,
    RoundOrdinal.INTRODUCTION,
    RoundOrdinal.ROUND_2,
    RoundOrdinal.ROUND_3,
    RoundOrdinal.ROUND_4,
    RoundOrdinal.ROUND_5,
    RoundOrdinal.ACCUSATION,
    RoundOrdinal.FINAL_STATEMENTS,
    RoundOrdinal.END,
)

# Single source of truth for "what comes next". END has no successor.
NEXT_ROUND: dict[RoundOrdinal, RoundOrdinal] = {
    RoundOrdinal.PENDING: RoundOrdinal.INTRODUCTION,
    RoundOrdinal.INTRODUCTION: RoundOrdinal.ROUND_2,
    RoundOrdinal.ROUND_2: RoundOrdinal.ROUND_3,
    RoundOrdinal.ROUND_3: RoundOrdinal.ROUND_4,
    RoundOrdinal.ROUND_4: RoundOrdinal.ROUND_5,
    RoundOrdinal.ROUND_5: RoundOrdinal.ACCUSATION,
    RoundOrdinal.ACCUSATION: RoundOrdinal.FINAL_STATEMENTS,
    RoundOrdinal.FINAL_STATEMENTS: RoundOrdinal.END,
}

# Rounds that carry per-character script text (1-6, no 5.5)
SCRIPTED_ROUNDS: tuple[RoundOrdinal, ...] = (
    RoundOrdinal.INTRODUCTION,
    RoundOrdinal.ROUND_2,
    RoundOrdinal.ROUND_3,
    RoundOrdinal.ROUND_4,
    RoundOrdinal.ROUND_5,
    RoundOrdinal.FINAL_STATEMENTS,
)

_BY_NUMBER: dict[float, RoundOrdinal] = {member.number: member for member in RoundOrdinal}


def next_round(current: RoundOrdinal) -> Optional[RoundOrdinal]:
    """Return the round after `current`, or None at the terminal round."""
    return NEXT_ROUND.get(current)
