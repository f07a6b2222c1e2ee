"""
Operation Result Models

Every fallible public operation returns one of these instead of raising.
The reason string is always safe to show to the user.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class LockFailureCode(str, Enum):
    """Why a lock, unlock, regenerate or guarded write was refused."""
    INVALID_PERIOD_FORMAT = "invalid_period_format"
    SNAPSHOT_MISSING_WHILE_LOCKED = "snapshot_missing_while_locked"
    NO_ACTIVE_PLAN = "no_active_plan"
    SNAPSHOT_ALREADY_EXISTS = "snapshot_already_exists"
    PERIOD_NOT_LOCKED = "period_not_locked"
    PERIOD_LOCKED = "period_locked"
    PLAN_HAS_SNAPSHOTS = "plan_has_snapshots"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"


class OperationResult(BaseModel):
    """
    Discriminated result: ``ok`` is True on success, otherwise ``reason``
    and ``error_code`` say what went wrong.
    """

    ok: bool
    reason: Optional[str] = None
    error_code: Optional[LockFailureCode] = None
    record_id: Optional[str] = Field(
        default=None,
        description="ID of the record created by the operation, if any"
    )

    @classmethod
    def success(cls, record_id: Optional[str] = None) -> "OperationResult":
        return cls(ok=True, record_id=record_id)

    @classmethod
    def failure(cls, code: LockFailureCode, reason: str) -> "OperationResult":
        return cls(ok=False, reason=reason, error_code=code)

    def __bool__(self) -> bool:
        return self.ok


class PeriodLockStatus(BaseModel):
    """Lock state of one period as the UI needs to show it."""

    period: str
    is_locked: bool
    has_snapshot: bool

    @property
    def snapshot_missing(self) -> bool:
        """Locked without a snapshot: reports cannot render until regenerated."""
        return self.is_locked and not self.has_snapshot


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unbalanced')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class PlanValidation(BaseModel):
    """Balance check of a distribution plan."""

    total_pct: float
    is_balanced: bool
    message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)
