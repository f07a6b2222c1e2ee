"""
Data Models Package

This package contains all Pydantic models used in Stewardly.
All data flowing through the system must conform to these schemas.
"""

from stewardly.models.plan import (
    CATEGORIES,
    FALLBACK_CURRENCY,
    AllocationLine,
    DistributionCategory,
    DistributionPlan,
    DistributionTarget,
    PeriodAllocation,
    PeriodSnapshot,
    PlanSource,
    ResolvedPlan,
    normalize_targets,
    sum_targets,
)
from stewardly.models.income import (
    EffectiveIncome,
    IncomeFrequency,
    IncomeInput,
    IncomeRecord,
    IncomeStatus,
    MoneyTransaction,
    MonthlyPayRule,
    TransactionDirection,
)
from stewardly.models.results import (
    LockFailureCode,
    OperationResult,
    PeriodLockStatus,
    PlanValidation,
    ValidationIssue,
)
from stewardly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Plan models
    "CATEGORIES",
    "AllocationLine",
    "PeriodAllocation",
    "FALLBACK_CURRENCY",
    "DistributionCategory",
    "DistributionPlan",
    "DistributionTarget",
    "PeriodSnapshot",
    "PlanSource",
    "ResolvedPlan",
    "normalize_targets",
    "sum_targets",
    # Income models
    "EffectiveIncome",
    "IncomeFrequency",
    "IncomeInput",
    "IncomeRecord",
    "IncomeStatus",
    "MoneyTransaction",
    "MonthlyPayRule",
    "TransactionDirection",
    # Results
    "LockFailureCode",
    "OperationResult",
    "PeriodLockStatus",
    "PlanValidation",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
