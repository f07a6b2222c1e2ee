"""
Allocation math.

Splits an income total across a plan's targets. Each line is rounded to
cents on its own, so the lines may not add back to the exact total.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from stewardly.models.plan import AllocationLine, DistributionTarget, PeriodAllocation
from stewardly.models.income import IncomeRecord
from stewardly.queries.recurrence import IncomeRecurrenceEngine, sum_effective_income
from stewardly.queries.resolver import PlanResolver


CENTS = Decimal("0.01")


def _round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_allocations(
    targets: Iterable[DistributionTarget],
    income: Decimal,
) -> list[AllocationLine]:
    try:
        income = Decimal(str(income))
    except InvalidOperation:
        income = Decimal("0")
    if not income.is_finite():
        income = Decimal("0")

    return [
        AllocationLine(
            category=target.category,
            target_pct=target.target_pct,
            amount=_round2(income * Decimal(str(target.target_pct)) / 100),
        )
        for target in targets
    ]


def sum_allocations(lines: Iterable[AllocationLine]) -> Decimal:
    return _round2(sum((line.amount for line in lines), Decimal("0")))


def build_period_allocation(
    period: str,
    stored_income: Iterable[IncomeRecord],
    *,
    resolver: PlanResolver,
    engine: IncomeRecurrenceEngine,
) -> PeriodAllocation:
    """
    Effective income for ``period`` split under the plan that governs it.

    With no plan, or a locked period whose snapshot is gone, the income is
    still reported but there are no allocation lines.
    """
    income = engine.get_effective_income_for_period(period, stored_income)
    total = sum_effective_income(income)
    plan = resolver.resolve_plan_for_period(period)

    if plan is None:
        return PeriodAllocation(
            period=period,
            snapshot_missing=resolver.is_snapshot_missing(period),
            income=income,
            total_income=total,
        )

    lines = compute_allocations(plan.targets, total)
    return PeriodAllocation(
        period=period,
        plan=plan,
        income=income,
        total_income=total,
        lines=lines,
        total_allocated=sum_allocations(lines),
    )
