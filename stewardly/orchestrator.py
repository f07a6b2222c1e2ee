"""
Main Orchestrator for Stewardly

This module owns the lock lifecycle of a period:
1. Lock (validate → read active plan → save snapshot → set lock flag)
2. Unlock (clear lock flag, keep snapshot)
3. Regenerate (rebuild a lost snapshot for a locked period)

DESIGN DECISION: The lock service is the only writer that touches both
the snapshot store and the lock store. It enforces:
- A lock flag is never set before its snapshot is saved
- A failed lock flag write undoes the snapshot write before it
- Regeneration never overwrites an existing snapshot
- Every transition and every refusal is audited

It also hosts the composition root, ``create_app_components``, which
builds every store and service over one shared storage backend.
"""

from dataclasses import dataclass
from typing import Optional

from stewardly.audit import AuditLogger
from stewardly.config import Settings, get_settings
from stewardly.models.plan import DistributionPlan, PeriodSnapshot
from stewardly.models.results import LockFailureCode, OperationResult, PeriodLockStatus
from stewardly.periods import InvalidPeriodError, assert_period_key, is_valid_period_key
from stewardly.queries import IncomeRecurrenceEngine, PlanResolver
from stewardly.saga import CompensatedError, run_with_compensation
from stewardly.services.storage import (
    BackendAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageBackend,
    StorageError,
)
from stewardly.stores import (
    IncomeStore,
    LockStore,
    PlanStore,
    SnapshotStore,
    TransactionStore,
)
from stewardly.validation import PlanValidator


class LockFlagNotPersisted(StorageError):
    """The lock store reported that the lock flag was not written."""
    pass


class PeriodLockService:
    """
    Locks and unlocks periods, keeping lock flags and snapshots consistent.

    Every public method returns an OperationResult; nothing raises across
    this boundary.
    """

    def __init__(
        self,
        lock_store: LockStore,
        snapshot_store: SnapshotStore,
        plan_store: PlanStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._locks = lock_store
        self._snapshots = snapshot_store
        self._plans = plan_store
        self._audit = audit_logger or AuditLogger()

    def _reject(self, period: str, code: LockFailureCode, reason: str) -> OperationResult:
        self._audit.log_lock_rejected(period, code.value, reason)
        return OperationResult.failure(code, reason)

    def _validate_period(self, period: str) -> Optional[OperationResult]:
        try:
            assert_period_key(period)
        except InvalidPeriodError as e:
            return self._reject(str(period), LockFailureCode.INVALID_PERIOD_FORMAT, str(e))
        return None

    def _snapshot_active_plan(self, period: str) -> tuple[Optional[DistributionPlan], Optional[PeriodSnapshot]]:
        plan = self._plans.get_active(repair=False)
        if plan is None:
            return None, None
        return plan, PeriodSnapshot.from_plan(plan, period)

    # -------------------------------------------------------------------------
    # Lock lifecycle
    # -------------------------------------------------------------------------

    def lock_period(self, period: str) -> OperationResult:
        """
        Lock a period, freezing the active plan as its snapshot.

        Locking a period that is already locked with a snapshot succeeds
        and changes nothing.

        Returns:
            Success, or a failure carrying the reason and error code
        """
        invalid = self._validate_period(period)
        if invalid is not None:
            return invalid

        if self._locks.is_locked(period):
            if self._snapshots.get(period) is not None:
                return OperationResult.success()
            return self._reject(
                period,
                LockFailureCode.SNAPSHOT_MISSING_WHILE_LOCKED,
                "Period is locked but snapshot is missing; use regenerate_snapshot",
            )

        plan, snapshot = self._snapshot_active_plan(period)
        if snapshot is None:
            return self._reject(
                period,
                LockFailureCode.NO_ACTIVE_PLAN,
                "No distribution plan exists to snapshot",
            )

        # A snapshot kept from an earlier unlock is replaced, and restored on rollback
        previous = self._snapshots.get(period)

        # Step 1: snapshot first; a failure here leaves nothing behind
        try:
            self._snapshots.save(snapshot)
        except StorageError as e:
            return self._reject(
                period,
                LockFailureCode.STORAGE_ERROR,
                f"Failed to save snapshot: {e}",
            )

        # Step 2: lock flag, undoing step 1 if it does not persist
        def set_lock_flag() -> None:
            if not self._locks.set_locked(period, True):
                raise LockFlagNotPersisted("lock store did not persist the flag")

        def restore_snapshot() -> None:
            if previous is None:
                self._snapshots.delete(period)
            else:
                self._snapshots.save(previous)

        try:
            run_with_compensation(set_lock_flag, restore_snapshot)
        except CompensatedError as e:
            return self._lock_rolled_back(period, e)

        self._audit.log_snapshot_created(period, plan.id)
        self._audit.log_period_locked(period, plan.id, plan.name)
        return OperationResult.success()

    def _lock_rolled_back(self, period: str, error: CompensatedError) -> OperationResult:
        reason = f"Failed to set lock flag: {error.original}"
        if error.compensation_failed:
            self._audit.log_rollback_failed(
                period, str(error.original), str(error.compensation_error)
            )
            reason += (
                f". Rollback also failed ({error.compensation_error}); "
                f"an orphaned snapshot may remain for {period}"
            )
        else:
            self._audit.log_rollback_completed(period, str(error.original))
        return OperationResult.failure(LockFailureCode.STORAGE_ERROR, reason)

    def unlock_period(self, period: str) -> OperationResult:
        """
        Unlock a period. Its snapshot is kept so relocking is cheap and
        history is not lost.
        """
        invalid = self._validate_period(period)
        if invalid is not None:
            return invalid

        snapshot_kept = self._snapshots.get(period) is not None
        if not self._locks.set_locked(period, False):
            return self._reject(
                period,
                LockFailureCode.STORAGE_ERROR,
                f"Failed to clear lock flag for {period}",
            )

        self._audit.log_period_unlocked(period, snapshot_kept)
        return OperationResult.success()

    def regenerate_snapshot(self, period: str) -> OperationResult:
        """
        Rebuild the snapshot of a locked period from the current active plan.

        Only valid while the period is locked and has no snapshot; an
        existing snapshot is never overwritten. The lock flag is untouched.
        """
        invalid = self._validate_period(period)
        if invalid is not None:
            return invalid

        if not self._locks.is_locked(period):
            return self._reject(
                period, LockFailureCode.PERIOD_NOT_LOCKED, "Period is not locked"
            )

        if self._snapshots.get(period) is not None:
            return self._reject(
                period, LockFailureCode.SNAPSHOT_ALREADY_EXISTS, "Snapshot already exists"
            )

        plan, snapshot = self._snapshot_active_plan(period)
        if snapshot is None:
            return self._reject(
                period,
                LockFailureCode.NO_ACTIVE_PLAN,
                "No distribution plan exists to snapshot",
            )

        try:
            self._snapshots.save(snapshot)
        except StorageError as e:
            return self._reject(
                period,
                LockFailureCode.STORAGE_ERROR,
                f"Failed to regenerate snapshot: {e}",
            )

        self._audit.log_snapshot_created(period, plan.id, regenerated=True)
        return OperationResult.success()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_snapshot(self, period: str) -> bool:
        """False for malformed keys rather than an error."""
        if not is_valid_period_key(period):
            return False
        return self._snapshots.get(period) is not None

    def is_locked(self, period: str) -> bool:
        return is_valid_period_key(period) and self._locks.is_locked(period)

    def period_status(self, period: str) -> PeriodLockStatus:
        return PeriodLockStatus(
            period=period,
            is_locked=self.is_locked(period),
            has_snapshot=self.has_snapshot(period),
        )

    # -------------------------------------------------------------------------
    # Plan management that depends on snapshots
    # -------------------------------------------------------------------------

    def list_plans(self) -> list[DistributionPlan]:
        """All plans, each flagged with whether any snapshot references it."""
        referenced = {snapshot.plan_id for snapshot in self._snapshots.list()}
        plans = self._plans.list()
        for plan in plans:
            plan.has_snapshots = plan.id in referenced
        return plans

    def delete_plan(self, plan_id: str) -> OperationResult:
        """
        Delete a plan unless a snapshot was taken from it.

        Snapshots are independent copies, but a plan that governed a
        locked month stays around so its name keeps resolving.
        """
        plan = self._plans.get(plan_id)
        if plan is None:
            return OperationResult.failure(LockFailureCode.NOT_FOUND, "Plan not found")

        if self._snapshots.references_plan(plan_id):
            return OperationResult.failure(
                LockFailureCode.PLAN_HAS_SNAPSHOTS,
                f'Plan "{plan.name}" is used by locked period snapshots and cannot be deleted',
            )

        try:
            self._plans.delete(plan_id)
        except StorageError as e:
            return OperationResult.failure(
                LockFailureCode.STORAGE_ERROR, f"Failed to delete plan: {e}"
            )

        self._audit.log_plan_deleted(plan.id, plan.name)
        return OperationResult.success(plan_id)


# =============================================================================
# COMPOSITION ROOT
# =============================================================================

@dataclass
class AppComponents:
    """Every store and service, sharing one backend and one audit logger."""

    settings: Settings
    backend: StorageBackend
    audit_logger: AuditLogger
    lock_store: LockStore
    snapshot_store: SnapshotStore
    plan_store: PlanStore
    income_store: IncomeStore
    transaction_store: TransactionStore
    lock_service: PeriodLockService
    resolver: PlanResolver
    recurrence: IncomeRecurrenceEngine
    plan_validator: PlanValidator


def _create_backend(settings: Settings) -> StorageBackend:
    storage_settings = settings.storage
    if storage_settings.backend == "json":
        return JsonFileStorage(
            storage_settings.data_dir,
            write_attempts=storage_settings.write_attempts,
        )
    return InMemoryStorage()


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[StorageBackend] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings
        backend: Overrides the backend chosen by settings, e.g. an
                 InMemoryStorage in tests

    Returns:
        AppComponents wired over a single backend
    """
    settings = settings or get_settings()
    if backend is None:
        backend = _create_backend(settings)
    app_settings = settings.app

    audit_logger = AuditLogger(
        BackendAuditStorage(backend, max_events=app_settings.max_audit_events)
    )

    lock_store = LockStore(backend, audit_logger)
    snapshot_store = SnapshotStore(backend, audit_logger)
    plan_store = PlanStore(backend, audit_logger)

    if app_settings.seed_default_plan:
        plan_store.ensure_default_plan(
            currency=app_settings.default_currency,
            name=app_settings.default_plan_name,
        )

    return AppComponents(
        settings=settings,
        backend=backend,
        audit_logger=audit_logger,
        lock_store=lock_store,
        snapshot_store=snapshot_store,
        plan_store=plan_store,
        income_store=IncomeStore(backend, lock_store, audit_logger),
        transaction_store=TransactionStore(backend, lock_store, audit_logger),
        lock_service=PeriodLockService(lock_store, snapshot_store, plan_store, audit_logger),
        resolver=PlanResolver(plan_store, lock_store, snapshot_store),
        recurrence=IncomeRecurrenceEngine(
            lock_store,
            history_start=app_settings.recurrence_history_start,
        ),
        plan_validator=PlanValidator(),
    )
