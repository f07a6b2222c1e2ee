"""
Tests for the read paths: plan resolution, recurring income projection
and allocation math.
"""

from datetime import date
from decimal import Decimal

import pytest

from stewardly.models.income import IncomeFrequency, IncomeInput, IncomeStatus, MonthlyPayRule
from stewardly.models.plan import DistributionCategory, DistributionTarget, PlanSource
from stewardly.queries import (
    IncomeRecurrenceEngine,
    PlanResolver,
    build_period_allocation,
    compute_allocations,
    sum_allocations,
    sum_effective_income,
    virtual_income_id,
)
from stewardly.services.storage import AUDIT_LOG_KEY
from stewardly.stores import (
    ACTIVE_PLAN_KEY,
    PERIOD_LOCKS_KEY,
    PERIOD_SNAPSHOTS_KEY,
    LockStore,
    PlanStore,
    SnapshotStore,
)

from conftest import FaultyStorage, make_plan, make_salary


class TestPlanResolver:
    """Tests for snapshot-aware plan resolution."""

    def test_no_plan_resolves_to_none(self, resolver):
        """Test that nothing resolves before a plan exists."""
        assert resolver.resolve_plan_for_period(None) is None
        assert resolver.resolve_plan_for_period("2025-01") is None

    def test_all_time_view_is_always_live(self, resolver, lock_service, active_plan):
        """Test that the all-time view ignores locks."""
        lock_service.lock_period("2025-01")

        resolved = resolver.resolve_plan_for_period(None)

        assert resolved.source == PlanSource.LIVE
        assert resolved.plan_id == active_plan.id

    def test_unlocked_period_is_live(self, resolver, active_plan):
        """Test that an unlocked period uses the live plan."""
        resolved = resolver.resolve_plan_for_period("2025-06")

        assert resolved.source == PlanSource.LIVE
        assert resolved.locked_at is None

    def test_locked_period_uses_snapshot(self, resolver, lock_service, snapshot_store, active_plan):
        """Test that a locked period resolves to its snapshot with its timestamp."""
        lock_service.lock_period("2025-01")

        resolved = resolver.resolve_plan_for_period("2025-01")

        assert resolved.source == PlanSource.SNAPSHOT
        assert resolved.locked_at == snapshot_store.get("2025-01").locked_at
        assert resolved.plan_name == "Household"

    def test_locked_without_snapshot_resolves_to_none(self, resolver, lock_store, active_plan):
        """Test that a lost snapshot is not papered over with the live plan."""
        lock_store.set_locked("2025-01", True)

        assert resolver.resolve_plan_for_period("2025-01") is None
        assert resolver.is_snapshot_missing("2025-01") is True

    def test_snapshot_is_independent_of_live_edits(self, resolver, lock_service, plan_store, active_plan):
        """Test that editing the live plan does not leak into a snapshot."""
        lock_service.lock_period("2025-01")

        active_plan.targets = [{"category": "Living", "target_pct": 100}]
        plan_store.update(active_plan)

        resolved = resolver.resolve_plan_for_period("2025-01")
        pcts = {t.category: t.target_pct for t in resolved.targets}
        assert pcts[DistributionCategory.SAVINGS] == 50

    def test_resolver_does_not_repair_pointer(self, resolver, plan_store, backend, active_plan):
        """Test that resolving never writes the active-plan pointer."""
        backend.remove(ACTIVE_PLAN_KEY)

        assert resolver.resolve_plan_for_period(None).plan_id == active_plan.id
        assert backend.read(ACTIVE_PLAN_KEY) is None

    def test_unreadable_pointer_falls_back_to_first_plan(self):
        """Test that a pointer read error does not escape the resolver."""
        backend = FaultyStorage()
        plans = PlanStore(backend)
        plan = make_plan(Living=100)
        plans.create(plan)
        backend.unreadable.add(ACTIVE_PLAN_KEY)
        resolver = PlanResolver(plans, LockStore(backend), SnapshotStore(backend))

        resolved = resolver.resolve_plan_for_period("2025-01")

        assert resolved.plan_id == plan.id
        assert resolved.source == PlanSource.LIVE

    def test_corrupt_documents_leave_no_trace_on_read(self, resolver, backend, active_plan):
        """Test that repeated resolution over corrupt data writes nothing."""
        backend.write(PERIOD_LOCKS_KEY, "{not json")
        backend.write(PERIOD_SNAPSHOTS_KEY, "[]")
        audit_before = backend.read(AUDIT_LOG_KEY)

        for _ in range(2):
            assert resolver.resolve_plan_for_period("2025-01").source == PlanSource.LIVE

        assert backend.read(AUDIT_LOG_KEY) == audit_before


class TestRecurrenceDate:
    """Tests for projecting a monthly record onto a period."""

    def test_day_of_month(self, engine):
        """Test a plain day-of-month rule."""
        assert engine.get_recurrence_date(make_salary(), "2025-03") == date(2025, 3, 15)

    @pytest.mark.parametrize("period, expected", [
        ("2025-02", date(2025, 2, 28)),
        ("2024-02", date(2024, 2, 29)),
        ("2025-04", date(2025, 4, 30)),
        ("2025-05", date(2025, 5, 31)),
    ])
    def test_day_31_clamps_to_month_end(self, engine, period, expected):
        """Test that a day-31 rule lands on the last day of short months."""
        salary = make_salary(monthly_pay_day=31)
        assert engine.get_recurrence_date(salary, period) == expected

    def test_day_of_month_without_pay_day_uses_record_day(self, engine):
        """Test the fallback to the day the record was logged on."""
        assert engine.get_recurrence_date(make_salary(monthly_pay_day=None), "2025-03") == date(2025, 3, 15)

        month_end = make_salary(date=date(2025, 1, 31), monthly_pay_day=None)
        assert engine.get_recurrence_date(month_end, "2025-02") == date(2025, 2, 28)

    def test_end_of_month(self, engine):
        """Test the end-of-month rule."""
        salary = make_salary(monthly_pay_rule=MonthlyPayRule.END_OF_MONTH, monthly_pay_day=None)
        assert engine.get_recurrence_date(salary, "2025-02") == date(2025, 2, 28)

    def test_only_active_monthly_records_recur(self, engine):
        """Test that paused, one-time and rule-less records do not project."""
        assert engine.get_recurrence_date(make_salary(status=IncomeStatus.PAUSED), "2025-03") is None
        assert engine.get_recurrence_date(make_salary(frequency=IncomeFrequency.ONE_TIME), "2025-03") is None
        assert engine.get_recurrence_date(make_salary(monthly_pay_rule=None), "2025-03") is None

    def test_start_and_end_bounds_are_inclusive(self, engine):
        """Test that the record's window limits projection."""
        salary = make_salary(start_date=date(2025, 3, 15), end_date=date(2025, 5, 15))

        assert engine.get_recurrence_date(salary, "2025-02") is None
        assert engine.get_recurrence_date(salary, "2025-03") == date(2025, 3, 15)
        assert engine.get_recurrence_date(salary, "2025-05") == date(2025, 5, 15)
        assert engine.get_recurrence_date(salary, "2025-06") is None


class TestEffectiveIncome:
    """Tests for stored plus virtual income per period."""

    def test_virtual_entry_shape(self, engine):
        """Test the synthetic id and the link back to the source record."""
        virtual = engine.generate_virtual_income(make_salary(), "2025-03")

        assert virtual.id == "virtual_salary_2025-03"
        assert virtual.source_id == "salary"
        assert virtual.is_virtual is True
        assert virtual.name == "Salary"

    def test_stored_income_always_included(self, engine, lock_store):
        """Test that stored records of a locked period still show."""
        bonus = make_salary(
            id="bonus",
            date=date(2025, 3, 2),
            frequency=IncomeFrequency.ONE_TIME,
            monthly_pay_rule=None,
        )
        lock_store.set_locked("2025-03", True)

        effective = engine.get_effective_income_for_period("2025-03", [bonus, make_salary()])

        assert [e.id for e in effective] == ["bonus"]
        assert not any(e.is_virtual for e in effective)

    def test_locked_periods_never_contain_virtual_income(self, engine, lock_store):
        """Test virtual suppression over a range of locked months."""
        stored = [make_salary(), make_salary(id="rent", monthly_pay_rule=MonthlyPayRule.END_OF_MONTH)]
        for month in range(1, 13):
            lock_store.set_locked(f"2025-{month:02d}", True)

        for month in range(1, 13):
            effective = engine.get_effective_income_for_period(f"2025-{month:02d}", stored)
            assert all(not e.is_virtual for e in effective)

    def test_virtual_colliding_with_stored_id_is_skipped(self, engine):
        """Test that a logged copy of a projection is not counted twice."""
        salary = make_salary()
        logged = make_salary(
            id=virtual_income_id("salary", "2025-03"),
            date=date(2025, 3, 15),
            frequency=IncomeFrequency.ONE_TIME,
            monthly_pay_rule=None,
        )

        effective = engine.get_effective_income_for_period("2025-03", [salary, logged])

        assert len(effective) == 1
        assert effective[0].is_virtual is False
        assert sum_effective_income(effective) == Decimal("5000")

    def test_income_saved_without_pay_day_projects(self, engine, income_store):
        """Test that monthly income accepted without a pay day still recurs."""
        result = income_store.add(IncomeInput(
            date=date(2025, 1, 20),
            name="Retainer",
            amount=Decimal("800"),
            currency="SGD",
            frequency=IncomeFrequency.MONTHLY,
            monthly_pay_rule=MonthlyPayRule.DAY_OF_MONTH,
        ))

        effective = engine.get_effective_income_for_period("2025-03", income_store.list())

        assert result.ok is True
        assert [(e.date, e.is_virtual) for e in effective] == [(date(2025, 3, 20), True)]

    def test_all_effective_income_walks_the_window(self, lock_store):
        """Test every month from start to today, plus stored periods."""
        engine = IncomeRecurrenceEngine(lock_store, history_start="2024-11")
        salary = make_salary(date=date(2024, 11, 15))

        effective = engine.get_all_effective_income([salary], today=date(2025, 2, 3))

        periods = sorted({e.period for e in effective})
        assert periods == ["2024-11", "2024-12", "2025-01", "2025-02"]
        # The stored record and its projection both land in its own month
        assert len([e for e in effective if e.period == "2024-11"]) == 2

    def test_all_effective_income_respects_end_date(self, engine):
        """Test that projection stops at the record's end date."""
        salary = make_salary(
            date=date(2025, 1, 15),
            start_date=date(2025, 1, 1),
            end_date=date(2025, 3, 31),
        )

        effective = engine.get_all_effective_income([salary], today=date(2025, 12, 1))

        assert max(e.period for e in effective) == "2025-03"


class TestAllocations:
    """Tests for splitting income across targets."""

    def test_compute_allocations_rounds_each_line(self):
        """Test per-line rounding to cents."""
        targets = [
            DistributionTarget(category=DistributionCategory.LIVING, target_pct=33.33),
            DistributionTarget(category=DistributionCategory.SAVINGS, target_pct=66.67),
        ]

        lines = compute_allocations(targets, Decimal("100.01"))

        assert [line.amount for line in lines] == [Decimal("33.33"), Decimal("66.68")]
        assert sum_allocations(lines) == Decimal("100.01")

    def test_non_finite_income_counts_as_zero(self):
        """Test that NaN income allocates nothing."""
        targets = [DistributionTarget(category=DistributionCategory.LIVING, target_pct=100)]
        lines = compute_allocations(targets, Decimal("NaN"))
        assert lines[0].amount == Decimal("0.00")

    def test_build_period_allocation(self, resolver, engine, active_plan):
        """Test income and split for an unlocked month."""
        allocation = build_period_allocation(
            "2025-03", [make_salary()], resolver=resolver, engine=engine
        )

        assert allocation.total_income == Decimal("5000")
        amounts = {line.category: line.amount for line in allocation.lines}
        assert amounts[DistributionCategory.LIVING] == Decimal("2500.00")
        assert amounts[DistributionCategory.SAVINGS] == Decimal("2500.00")
        assert allocation.total_allocated == Decimal("5000.00")
        assert allocation.plan.source == PlanSource.LIVE

    def test_build_period_allocation_with_missing_snapshot(self, resolver, engine, lock_store, active_plan):
        """Test that a lost snapshot is flagged instead of allocating."""
        lock_store.set_locked("2025-03", True)

        allocation = build_period_allocation("2025-03", [], resolver=resolver, engine=engine)

        assert allocation.plan is None
        assert allocation.snapshot_missing is True
        assert allocation.lines == []

    def test_build_period_allocation_without_plan(self, resolver, engine):
        """Test that no plan is not reported as a missing snapshot."""
        allocation = build_period_allocation("2025-03", [], resolver=resolver, engine=engine)

        assert allocation.plan is None
        assert allocation.snapshot_missing is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
