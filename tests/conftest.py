"""
Shared fixtures.

Every fixture works on one InMemoryStorage so stores observe each
other's writes, and audit events land in that same backend where tests
can inspect them.
"""

from datetime import date
from decimal import Decimal

import pytest

from stewardly.audit import AuditLogger
from stewardly.models.income import IncomeFrequency, IncomeRecord, MonthlyPayRule
from stewardly.models.plan import DistributionCategory, DistributionPlan, DistributionTarget
from stewardly.orchestrator import PeriodLockService
from stewardly.queries import IncomeRecurrenceEngine, PlanResolver
from stewardly.services.storage import BackendAuditStorage, InMemoryStorage, StorageError
from stewardly.stores import (
    IncomeStore,
    LockStore,
    PlanStore,
    SnapshotStore,
    TransactionStore,
)


def make_plan(name="Household", currency="SGD", **pcts) -> DistributionPlan:
    """Build a plan from keyword percentages, e.g. ``Living=50, Savings=50``."""
    return DistributionPlan(
        name=name,
        currency=currency,
        targets=[
            DistributionTarget(category=DistributionCategory(category), target_pct=pct)
            for category, pct in pcts.items()
        ],
    )


def make_salary(**overrides) -> IncomeRecord:
    fields = dict(
        id="salary",
        date=date(2025, 1, 15),
        name="Salary",
        amount=Decimal("5000"),
        currency="SGD",
        frequency=IncomeFrequency.MONTHLY,
        monthly_pay_rule=MonthlyPayRule.DAY_OF_MONTH,
        monthly_pay_day=15,
    )
    fields.update(overrides)
    return IncomeRecord(**fields)


class FaultyStorage(InMemoryStorage):
    """In-memory storage whose reads or writes fail for chosen keys."""

    def __init__(self):
        super().__init__()
        self.unreadable: set[str] = set()
        self.unwritable: set[str] = set()
        self.read_only = False

    def read(self, key):
        if key in self.unreadable:
            raise StorageError(f"permission denied: {key}")
        return super().read(key)

    def write(self, key, value):
        if self.read_only or key in self.unwritable:
            raise StorageError(f"disk full: {key}")
        super().write(key, value)

    def remove(self, key):
        if self.read_only or key in self.unwritable:
            raise StorageError(f"disk full: {key}")
        super().remove(key)


@pytest.fixture
def backend():
    return InMemoryStorage()


@pytest.fixture
def audit_storage(backend):
    return BackendAuditStorage(backend)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def lock_store(backend, audit_logger):
    return LockStore(backend, audit_logger)


@pytest.fixture
def snapshot_store(backend, audit_logger):
    return SnapshotStore(backend, audit_logger)


@pytest.fixture
def plan_store(backend, audit_logger):
    return PlanStore(backend, audit_logger)


@pytest.fixture
def income_store(backend, lock_store, audit_logger):
    return IncomeStore(backend, lock_store, audit_logger)


@pytest.fixture
def transaction_store(backend, lock_store, audit_logger):
    return TransactionStore(backend, lock_store, audit_logger)


@pytest.fixture
def lock_service(lock_store, snapshot_store, plan_store, audit_logger):
    return PeriodLockService(lock_store, snapshot_store, plan_store, audit_logger)


@pytest.fixture
def resolver(plan_store, lock_store, snapshot_store):
    return PlanResolver(plan_store, lock_store, snapshot_store)


@pytest.fixture
def engine(lock_store):
    return IncomeRecurrenceEngine(lock_store)


@pytest.fixture
def active_plan(plan_store):
    """A 50/50 Living/Savings plan, stored and active."""
    plan = make_plan(Living=50, Savings=50)
    plan_store.create(plan)
    return plan_store.get(plan.id)


@pytest.fixture
def event_types(audit_storage):
    """Callable returning the audit event types recorded so far."""
    def _event_types():
        return [event.event_type for event in audit_storage.get_recent_events(limit=1000)]
    return _event_types
