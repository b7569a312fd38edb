"""Session validation module.

Files:
- types.py: ValidationViolation, ValidationResult, ValidationSeverity
- exceptions.py: InvariantViolationError
- state_consistency.py: S.1-S.7 session invariant checks
"""

from .types import ValidationResult, ValidationViolation, ValidationSeverity
from .exceptions import InvariantViolationError
from .state_consistency import validate_session_state, assert_session_state

__all__ = [
    "ValidationResult",
    "ValidationViolation",
    "ValidationSeverity",
    "InvariantViolationError",
    "validate_session_state",
    "assert_session_state",
]
