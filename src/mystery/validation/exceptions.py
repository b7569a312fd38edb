"""Exception raised by fail-fast session-state checks."""

from typing import Optional

from mystery.errors import MysteryError
from .types import ValidationViolation


class InvariantViolationError(MysteryError):
    """A session snapshot broke at least one consistency rule.

    Raised by assert_session_state and the strict transition validator.
    Normal play never triggers it; it points at a store or coordinator
    bug.
    """

    def __init__(self, violations: list[ValidationViolation], code: Optional[str] = None):
        self.violations = violations
        self.code = code
        where = f"Session {code!r}" if code else "Session"
        rules = ", ".join(v.rule_id for v in violations) or "no rules"
        super().__init__(f"{where} is inconsistent: {rules}")

    def __str__(self) -> str:
        lines = [self.args[0]]
        lines.extend(f"  - {v.describe()}" for v in self.violations)
        return "\n".join(lines)
