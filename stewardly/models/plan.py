"""
Distribution Plan Models for Stewardly

A distribution plan says how income is split across the canonical
spending categories. The live plan is mutable; a period snapshot is a
frozen copy of it bound to one locked month.

DESIGN DECISION: Normalization lives in the model validators, so every
plan that exists in memory already has the canonical target list. The
stores never have to repair a plan after construction.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from stewardly.models.income import EffectiveIncome
from stewardly.periods import PERIOD_KEY_PATTERN, utc_now


FALLBACK_CURRENCY = "SGD"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class DistributionCategory(str, Enum):
    """
    Canonical spending categories.

    Declaration order is the canonical order of a plan's targets.
    """
    LIVING = "Living"
    SAVINGS = "Savings"
    INVESTMENTS = "Investments"
    DEBT = "Debt"
    PROTECTION = "Protection"
    SUPPORT_GIVING = "SupportGiving"
    TAXES = "Taxes"
    EDUCATION = "Education"


CATEGORIES: tuple[DistributionCategory, ...] = tuple(DistributionCategory)


class PlanSource(str, Enum):
    """Where a resolved plan came from."""
    SNAPSHOT = "snapshot"
    LIVE = "live"


# =============================================================================
# TARGETS
# =============================================================================

class DistributionTarget(BaseModel):
    """One category and the share of income it should receive."""
    model_config = ConfigDict(frozen=True)

    category: DistributionCategory
    target_pct: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Target share of income, 0-100"
    )


def _coerce_pct(value: Any) -> float:
    try:
        pct = float(value if value is not None else 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(pct):
        return 0.0
    return min(max(pct, 0.0), 100.0)


def normalize_targets(raw_targets: Any) -> list[DistributionTarget]:
    """
    Rebuild a target list over the canonical category set.

    Unknown categories are dropped, missing ones default to 0%, the last
    duplicate wins, and non-finite percentages become 0.
    """
    existing: dict[DistributionCategory, float] = {}
    for item in raw_targets or []:
        if isinstance(item, DistributionTarget):
            category, pct = item.category, item.target_pct
        elif isinstance(item, dict):
            category = item.get("category")
            pct = item.get("target_pct", item.get("targetPct"))
        else:
            continue
        try:
            category = DistributionCategory(category)
        except ValueError:
            continue
        existing[category] = _coerce_pct(pct)

    return [
        DistributionTarget(category=category, target_pct=existing.get(category, 0.0))
        for category in CATEGORIES
    ]


def sum_targets(targets: list[DistributionTarget]) -> float:
    """Sum of target percentages rounded to 2 decimals."""
    return round(sum(t.target_pct for t in targets), 2)


# =============================================================================
# LIVE PLAN
# =============================================================================

class DistributionPlan(BaseModel):
    """
    A named, currency-tagged split of income across categories.

    ``is_active`` and ``has_snapshots`` are derived by the stores and are
    never persisted.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Unique plan ID"
    )
    name: str = Field(
        default="Untitled Plan",
        min_length=1,
        max_length=200,
        description="Display name"
    )
    currency: str = Field(
        default=FALLBACK_CURRENCY,
        description="ISO currency code"
    )
    targets: list[DistributionTarget] = Field(
        default_factory=lambda: normalize_targets([]),
        description="Targets in canonical category order"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last modification time"
    )

    # Derived, not stored
    is_active: bool = Field(default=False, exclude=True)
    has_snapshots: bool = Field(default=False, exclude=True)

    @field_validator('targets', mode='before')
    @classmethod
    def canonical_targets(cls, v: Any) -> list[DistributionTarget]:
        return normalize_targets(v)

    @field_validator('currency', mode='before')
    @classmethod
    def default_currency(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            return FALLBACK_CURRENCY
        return v.strip().upper()

    @field_validator('updated_at', mode='before')
    @classmethod
    def valid_timestamp(cls, v: Any) -> datetime:
        """Missing or unparseable timestamps become now."""
        if isinstance(v, datetime):
            parsed = v
        elif isinstance(v, str) and v.strip():
            try:
                parsed = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError:
                return utc_now()
        else:
            return utc_now()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @property
    def total_pct(self) -> float:
        return sum_targets(self.targets)

    @property
    def is_balanced(self) -> bool:
        """True when the targets add up to exactly 100%."""
        return self.total_pct == 100.0

    def target_for(self, category: DistributionCategory) -> float:
        for target in self.targets:
            if target.category == category:
                return target.target_pct
        return 0.0


# =============================================================================
# SNAPSHOTS
# =============================================================================

class PeriodSnapshot(BaseModel):
    """
    Frozen copy of a plan's shape, bound to one period.

    CRITICAL: Snapshots are never mutated. A lost snapshot is recreated
    whole by regeneration; nothing edits a snapshot in place.
    """
    model_config = ConfigDict(frozen=True)

    period: str = Field(
        ...,
        pattern=PERIOD_KEY_PATTERN.pattern,
        description="Period governed by this snapshot (YYYY-MM)"
    )
    plan_id: str = Field(
        ...,
        description="ID of the plan the snapshot was taken from"
    )
    plan_name: str = Field(
        ...,
        description="Name of that plan at snapshot time"
    )
    currency: str
    targets: tuple[DistributionTarget, ...] = Field(
        ...,
        description="Copied targets, independent of the live plan"
    )
    locked_at: datetime = Field(
        ...,
        description="When the snapshot was taken"
    )

    @classmethod
    def from_plan(
        cls,
        plan: DistributionPlan,
        period: str,
        locked_at: Optional[datetime] = None,
    ) -> "PeriodSnapshot":
        """Capture ``plan`` for ``period`` with a deep copy of its targets."""
        return cls(
            period=period,
            plan_id=plan.id,
            plan_name=plan.name,
            currency=plan.currency,
            targets=tuple(target.model_copy(deep=True) for target in plan.targets),
            locked_at=locked_at or utc_now(),
        )


# =============================================================================
# RESOLVED VIEW
# =============================================================================

class ResolvedPlan(BaseModel):
    """
    The plan that governs a period for display and calculation.

    Returned by the resolver so dashboards never branch on lock state.
    """

    currency: str
    targets: list[DistributionTarget]
    source: PlanSource
    locked_at: Optional[datetime] = None
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None


# =============================================================================
# ALLOCATIONS
# =============================================================================

class AllocationLine(BaseModel):
    """How much of a period's income one category should receive."""

    category: DistributionCategory
    target_pct: float
    amount: Decimal = Field(
        ...,
        description="Income times target share, rounded to cents"
    )


class PeriodAllocation(BaseModel):
    """
    Income and its split for one period, under the plan that governs it.

    ``plan`` is None when no plan applies; ``snapshot_missing`` tells a
    locked period with a lost snapshot apart from "no plan at all".
    """

    period: Optional[str] = None
    plan: Optional[ResolvedPlan] = None
    snapshot_missing: bool = False
    income: list[EffectiveIncome] = Field(default_factory=list)
    total_income: Decimal = Decimal("0")
    lines: list[AllocationLine] = Field(default_factory=list)
    total_allocated: Decimal = Decimal("0")
