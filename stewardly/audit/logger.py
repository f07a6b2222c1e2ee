"""
Audit Logger

DESIGN DECISION: Every lock transition and every swallowed storage
problem is logged. This provides:
1. Complete traceability of when periods were closed and reopened
2. Debugging capability when stored data turns out to be unreadable
3. A visible alert when a rollback leaves an orphaned snapshot

The audit logger:
- Is synchronous, like every other part of the core
- Gracefully handles failures (doesn't crash the app if logging fails)
- Is injected into stores and services so tests can inspect what was logged
"""

from typing import Optional

import structlog

from stewardly.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from stewardly.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit trail storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("stewardly.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_period_locked(self, period: str, plan_id: str, plan_name: str) -> None:
        self.log(AuditEventBuilder.period_locked(period, plan_id, plan_name))

    def log_period_unlocked(self, period: str, snapshot_kept: bool) -> None:
        self.log(AuditEventBuilder.period_unlocked(period, snapshot_kept))

    def log_lock_rejected(self, period: str, code: str, reason: str) -> None:
        self.log(AuditEventBuilder.lock_rejected(period, code, reason))

    def log_snapshot_created(self, period: str, plan_id: str, regenerated: bool = False) -> None:
        self.log(AuditEventBuilder.snapshot_created(period, plan_id, regenerated))

    def log_rollback_completed(self, period: str, error_message: str) -> None:
        self.log(AuditEventBuilder.rollback_completed(period, error_message))

    def log_rollback_failed(self, period: str, error_message: str, rollback_error: str) -> None:
        """Log an orphaned snapshot. This is the one CRITICAL event."""
        self.log(AuditEventBuilder.rollback_failed(period, error_message, rollback_error))

    def log_locked_write_blocked(self, period: str, action: str) -> None:
        self.log(AuditEventBuilder.locked_write_blocked(period, action))

    def log_plan_deleted(self, plan_id: str, plan_name: str) -> None:
        self.log(AuditEventBuilder.plan_deleted(plan_id, plan_name))

    def log_plan_seeded(self, plan_id: str, plan_name: str, currency: str) -> None:
        self.log(AuditEventBuilder.plan_seeded(plan_id, plan_name, currency))

    def log_store_write_failed(self, store: str, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.store_write_failed(store, key, error_message))

    def log_listener_failed(self, store: str, error_message: str) -> None:
        self.log(AuditEventBuilder.listener_failed(store, error_message))
