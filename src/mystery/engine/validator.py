"""SessionValidator - runtime validation hooks for session transitions.

Usage:
    # In tests or the simulator
    validator = CollectingValidator()
    coordinator = SessionCoordinator(store, catalog, validator=validator)
    violations = validator.get_violations()

    # No overhead in production (validator=None)
    coordinator = SessionCoordinator(store, catalog)
"""

from typing import Protocol

from mystery.engine.round_engine import RoundTransition
from mystery.models.session import SessionSnapshot
from mystery.validation import (
    InvariantViolationError,
    ValidationViolation,
    validate_session_state,
)


class SessionValidator(Protocol):
    """Hook called after every committed round transition."""

    async def on_transition(
        self,
        transition: RoundTransition,
        snapshot: SessionSnapshot,
    ) -> None:
        ...


class NoOpValidator:
    """Validator that does nothing."""

    async def on_transition(
        self,
        transition: RoundTransition,
        snapshot: SessionSnapshot,
    ) -> None:
        pass


class CollectingValidator:
    """Collects violations after each transition instead of raising."""

    def __init__(self) -> None:
        self._violations: list[ValidationViolation] = []
        self._transitions = 0

    async def on_transition(
        self,
        transition: RoundTransition,
        snapshot: SessionSnapshot,
    ) -> None:
        self._transitions += 1
        self._violations.extend(validate_session_state(snapshot).violations)

    @property
    def transitions_checked(self) -> int:
        return self._transitions

    def get_violations(self) -> list[ValidationViolation]:
        return list(self._violations)


class StrictValidator:
    """Raises InvariantViolationError as soon as a transition breaks a rule."""

    async def on_transition(
        self,
        transition: RoundTransition,
        snapshot: SessionSnapshot,
    ) -> None:
        result = validate_session_state(snapshot)
        if not result.is_valid:
            raise InvariantViolationError(result.violations, code=snapshot.code)


def create_validator(mode: str = "none") -> SessionValidator:
    """Build a validator by name: none, collect or strict."""
    if mode == "collect":
        return CollectingValidator()
    if mode == "strict":
        return StrictValidator()
    if mode == "none":
        return NoOpValidator()
    raise ValueError(f"Unknown validator mode: {mode!r}")
