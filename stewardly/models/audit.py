"""
Audit Models for Stewardly

Every lock transition, and every time the system had to swallow a
storage problem, is recorded as an audit event.
This provides:
1. A history of when each period was closed and reopened
2. Visibility into writes that failed without crashing the caller
3. A trail for the rare orphaned snapshot left by a failed rollback

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from stewardly.periods import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Lock lifecycle
    PERIOD_LOCKED = "period_locked"
    PERIOD_UNLOCKED = "period_unlocked"
    LOCK_REJECTED = "lock_rejected"

    # Snapshots
    SNAPSHOT_CREATED = "snapshot_created"
    SNAPSHOT_REGENERATED = "snapshot_regenerated"
    ROLLBACK_COMPLETED = "rollback_completed"
    ROLLBACK_FAILED = "rollback_failed"

    # Guarded writes
    LOCKED_WRITE_BLOCKED = "locked_write_blocked"

    # Plans
    PLAN_DELETED = "plan_deleted"
    PLAN_SEEDED = "plan_seeded"

    # Storage health
    STORE_WRITE_FAILED = "store_write_failed"
    LISTENER_FAILED = "listener_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    period: Optional[str] = Field(
        default=None,
        description="Period key the event relates to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'snapshot', 'plan', 'store')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "period": self.period,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_storage_dict(self) -> dict:
        """JSON-safe form used by the audit trail storage."""
        return json.loads(self.model_dump_json())


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.period_locked("2025-01", plan_id)
        event = AuditEventBuilder.rollback_failed("2025-01", error)
    """

    @staticmethod
    def period_locked(period: str, plan_id: str, plan_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_LOCKED,
            period=period,
            entity_type="snapshot",
            entity_id=period,
            description=f"Period {period} locked with plan '{plan_name}'",
            details={"plan_id": plan_id, "plan_name": plan_name},
        )

    @staticmethod
    def period_unlocked(period: str, snapshot_kept: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_UNLOCKED,
            severity=AuditSeverity.INFO if snapshot_kept else AuditSeverity.WARNING,
            period=period,
            description=(
                f"Period {period} unlocked"
                if snapshot_kept
                else f"Period {period} unlocked while its snapshot was missing"
            ),
            details={"snapshot_kept": snapshot_kept},
        )

    @staticmethod
    def lock_rejected(period: str, code: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCK_REJECTED,
            severity=AuditSeverity.WARNING,
            period=period,
            description=f"Lock operation refused for {period}: {code}",
            details={"code": code},
            error_message=reason,
        )

    @staticmethod
    def snapshot_created(period: str, plan_id: str, regenerated: bool = False) -> AuditEvent:
        event_type = (
            AuditEventType.SNAPSHOT_REGENERATED
            if regenerated
            else AuditEventType.SNAPSHOT_CREATED
        )
        return AuditEvent(
            event_type=event_type,
            period=period,
            entity_type="snapshot",
            entity_id=period,
            description=(
                f"Snapshot regenerated for {period} from the live plan"
                if regenerated
                else f"Snapshot created for {period}"
            ),
            details={"plan_id": plan_id},
        )

    @staticmethod
    def rollback_completed(period: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLBACK_COMPLETED,
            severity=AuditSeverity.WARNING,
            period=period,
            entity_type="snapshot",
            entity_id=period,
            description=f"Lock flag write failed for {period}; snapshot rolled back",
            error_message=error_message,
        )

    @staticmethod
    def rollback_failed(
        period: str,
        error_message: str,
        rollback_error: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLBACK_FAILED,
            severity=AuditSeverity.CRITICAL,
            period=period,
            entity_type="snapshot",
            entity_id=period,
            description=f"Orphaned snapshot for {period}: rollback after failed lock did not complete",
            details={"rollback_error": rollback_error},
            error_message=error_message,
        )

    @staticmethod
    def locked_write_blocked(period: str, action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCKED_WRITE_BLOCKED,
            severity=AuditSeverity.WARNING,
            period=period,
            description=f"Blocked '{action}' in locked period {period}",
            details={"action": action},
        )

    @staticmethod
    def plan_deleted(plan_id: str, plan_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_DELETED,
            entity_type="plan",
            entity_id=plan_id,
            description=f"Plan '{plan_name}' deleted",
        )

    @staticmethod
    def plan_seeded(plan_id: str, plan_name: str, currency: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_SEEDED,
            entity_type="plan",
            entity_id=plan_id,
            description=f"Default plan '{plan_name}' created",
            details={"currency": currency},
        )

    @staticmethod
    def store_write_failed(store: str, key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=key,
            description=f"Write to {store} failed",
            error_message=error_message,
        )

    @staticmethod
    def listener_failed(store: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LISTENER_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            description=f"A {store} subscriber raised during notification",
            error_message=error_message,
        )
