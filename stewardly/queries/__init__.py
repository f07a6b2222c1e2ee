"""Read paths: plan resolution, income projection and allocation."""

from stewardly.queries.allocations import (
    build_period_allocation,
    compute_allocations,
    sum_allocations,
)
from stewardly.queries.recurrence import (
    IncomeRecurrenceEngine,
    sum_effective_income,
    virtual_income_id,
)
from stewardly.queries.resolver import PlanResolver

__all__ = [
    "IncomeRecurrenceEngine",
    "PlanResolver",
    "build_period_allocation",
    "compute_allocations",
    "sum_allocations",
    "sum_effective_income",
    "virtual_income_id",
]
