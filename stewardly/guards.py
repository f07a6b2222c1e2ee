"""
Locked-period write guard.

Every store write that touches dated records goes through here first.
A locked period is read-only: income and transactions dated inside it
cannot be added, edited or removed until the period is unlocked.
"""

from typing import Optional

from stewardly.audit import AuditLogger
from stewardly.models.results import LockFailureCode, OperationResult
from stewardly.stores.locks import LockStore


class LockedPeriodError(Exception):
    """Raised when a write targets a locked period."""

    def __init__(self, period: str, action: str):
        self.period = period
        self.action = action
        super().__init__(
            f"Cannot {action} in locked period {period}. "
            f"Locked periods are read-only to preserve historical data."
        )


def check_period_editable(
    lock_store: LockStore,
    period: str,
    action: str,
    audit_logger: Optional[AuditLogger] = None,
) -> OperationResult:
    """
    Check that ``period`` accepts writes.

    Args:
        lock_store: Where lock flags live
        period: Period key the write would land in
        action: Human phrase for the write, e.g. "add income"
        audit_logger: Receives a LOCKED_WRITE_BLOCKED event on refusal

    Returns:
        Success, or a ``period_locked`` failure with a readable reason
    """
    if not lock_store.is_locked(period):
        return OperationResult.success()

    if audit_logger is not None:
        audit_logger.log_locked_write_blocked(period, action)
    return OperationResult.failure(
        LockFailureCode.PERIOD_LOCKED,
        str(LockedPeriodError(period, action)),
    )


def assert_period_editable(
    lock_store: LockStore,
    period: str,
    action: str,
) -> None:
    """
    Raising variant of ``check_period_editable``.

    Raises:
        LockedPeriodError: If the period is locked
    """
    if lock_store.is_locked(period):
        raise LockedPeriodError(period, action)
