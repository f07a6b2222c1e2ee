"""Persistent stores, one JSON document per store."""

from stewardly.stores.base import JsonDocumentStore, Listener, ParseError, Unsubscribe
from stewardly.stores.locks import PERIOD_LOCKS_KEY, LockStore
from stewardly.stores.snapshots import PERIOD_SNAPSHOTS_KEY, SnapshotStore
from stewardly.stores.plans import (
    ACTIVE_PLAN_KEY,
    DEFAULT_PLAN_TARGETS,
    DISTRIBUTION_PLANS_KEY,
    PlanStore,
)
from stewardly.stores.income import INCOME_KEY, IncomeStore
from stewardly.stores.transactions import TRANSACTIONS_KEY, TransactionStore

__all__ = [
    # Base
    "JsonDocumentStore",
    "Listener",
    "ParseError",
    "Unsubscribe",
    # Stores
    "LockStore",
    "SnapshotStore",
    "PlanStore",
    "IncomeStore",
    "TransactionStore",
    # Keys
    "PERIOD_LOCKS_KEY",
    "PERIOD_SNAPSHOTS_KEY",
    "DISTRIBUTION_PLANS_KEY",
    "ACTIVE_PLAN_KEY",
    "INCOME_KEY",
    "TRANSACTIONS_KEY",
    "DEFAULT_PLAN_TARGETS",
]
