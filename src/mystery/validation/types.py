"""Result types produced by the session-state checks."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class ValidationSeverity(str, Enum):
    """How serious a broken rule is.

    Only ERROR makes a snapshot invalid; WARNING and INFO are reported
    without failing the check.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationViolation(BaseModel):
    """One rule a session snapshot does not satisfy."""

    rule_id: str  # "S.1" .. "S.7"
    category: str  # area of the game the rule guards, e.g. "Capacity"
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    context: Optional[dict[str, Any]] = None

    def describe(self) -> str:
        """One-line form used in reports and exception messages."""
        return f"{self.rule_id} [{self.category}] {self.message}"


class ValidationResult(BaseModel):
    """Every violation found in one snapshot; truthy when none is an ERROR."""

    violations: list[ValidationViolation] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity is ValidationSeverity.ERROR]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def rule_ids(self) -> list[str]:
        return [v.rule_id for v in self.violations]

    def __bool__(self) -> bool:
        return self.is_valid

    def __add__(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(violations=[*self.violations, *other.violations])
