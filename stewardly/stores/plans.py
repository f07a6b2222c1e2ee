"""
Plan Store

CRUD over named distribution plans plus a single active-plan pointer.
The pointer is the only source of truth for which plan is active; the
``is_active`` flag on returned plans is derived from it on every read.
"""

import json
from typing import Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

from stewardly.audit import AuditLogger
from stewardly.models.plan import (
    DistributionCategory,
    DistributionPlan,
    DistributionTarget,
)
from stewardly.periods import utc_now
from stewardly.services.storage import StorageBackend, StorageError
from stewardly.stores.base import JsonDocumentStore, ParseError, parse_document


DISTRIBUTION_PLANS_KEY = "distribution_plans"
ACTIVE_PLAN_KEY = "active_plan_id"

DEFAULT_PLAN_TARGETS = {
    DistributionCategory.LIVING: 50,
    DistributionCategory.SAVINGS: 10,
    DistributionCategory.INVESTMENTS: 15,
    DistributionCategory.DEBT: 10,
    DistributionCategory.PROTECTION: 5,
    DistributionCategory.SUPPORT_GIVING: 5,
    DistributionCategory.TAXES: 5,
    DistributionCategory.EDUCATION: 0,
}

logger = structlog.get_logger(__name__)


class PlanStore(JsonDocumentStore):
    """
    Persists zero or more plans and tracks exactly one active plan.

    Deleting a plan that still has snapshots is refused by the lock
    service, not here.
    """

    store_name = "plan store"
    document_type = list

    def __init__(
        self,
        backend: StorageBackend,
        audit_logger: Optional[AuditLogger] = None,
        key: str = DISTRIBUTION_PLANS_KEY,
        active_key: str = ACTIVE_PLAN_KEY,
    ):
        super().__init__(backend, key, audit_logger)
        self._active_key = active_key

    # -------------------------------------------------------------------------
    # Persistence helpers
    # -------------------------------------------------------------------------

    def _read_plans(self) -> list[DistributionPlan]:
        plans = []
        for raw in self._read_document():
            try:
                plans.append(DistributionPlan.model_validate(raw))
            except ValidationError as e:
                self._report_unreadable(self._key, e)
        return plans

    def _write_plans(self, plans: list[DistributionPlan]) -> None:
        self._write_document([plan.model_dump(mode="json") for plan in plans])

    def _active_id(self) -> Optional[str]:
        try:
            raw = self._backend.read(self._active_key)
        except StorageError as e:
            self._report_unreadable(self._active_key, e)
            return None
        try:
            value = parse_document(raw, str)
        except ParseError:
            # Older data stored the bare id without JSON quoting
            value = raw
        return value or None

    def _set_active_id(self, plan_id: str) -> None:
        self._backend.write(self._active_key, json.dumps(plan_id))

    def _clear_active_id(self) -> None:
        self._backend.remove(self._active_key)

    def _ensure_active(self, plans: list[DistributionPlan]) -> Optional[str]:
        """Point at the first plan if the pointer is missing or stale."""
        active_id = self._active_id()
        if plans and not any(p.id == active_id for p in plans):
            active_id = plans[0].id
            try:
                self._set_active_id(active_id)
            except StorageError as e:
                # Retried on the next read
                logger.warning("active_plan_not_repaired", plan_id=active_id, error=str(e))
        return active_id

    @staticmethod
    def _normalized(plan: DistributionPlan) -> DistributionPlan:
        # Re-run the validators: the caller may have mutated targets in place
        return DistributionPlan.model_validate(plan.model_dump())

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, plan_id: str) -> Optional[DistributionPlan]:
        active_id = self._active_id()
        for plan in self._read_plans():
            if plan.id == plan_id:
                plan.is_active = plan.id == active_id
                return plan
        return None

    def get_active(self, repair: bool = True) -> Optional[DistributionPlan]:
        """
        Return the active plan.

        Args:
            repair: Persist the first plan as active when the pointer is
                    missing or stale. Pass False for a read without side
                    effects; the first plan is still returned.
        """
        plans = self._read_plans()
        if not plans:
            return None

        active_id = self._ensure_active(plans) if repair else self._active_id()
        active = next((p for p in plans if p.id == active_id), plans[0])
        active.is_active = True
        return active

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, plan: DistributionPlan) -> None:
        """Add a plan. The very first plan becomes active."""
        plans = self._read_plans()
        if any(p.id == plan.id for p in plans):
            logger.warning("plan_already_exists", plan_id=plan.id)
            return

        plans.append(self._normalized(plan))
        self._write_plans(plans)
        if len(plans) == 1:
            self._set_active_id(plan.id)
        self._notify()

    def update(self, plan: DistributionPlan) -> None:
        plans = self._read_plans()
        for index, existing in enumerate(plans):
            if existing.id == plan.id:
                plans[index] = self._normalized(plan)
                self._write_plans(plans)
                self._notify()
                return
        logger.warning("plan_not_found_for_update", plan_id=plan.id)

    def set_active(self, plan_id: str) -> None:
        if not any(p.id == plan_id for p in self._read_plans()):
            logger.warning("plan_not_found_for_activation", plan_id=plan_id)
            return
        self._set_active_id(plan_id)
        self._notify()

    def duplicate(self, plan_id: str) -> Optional[DistributionPlan]:
        """Clone a plan under a new id with a "(Copy)" suffix, inactive."""
        source = self.get(plan_id)
        if source is None:
            return None

        copy = source.model_copy(
            deep=True,
            update={
                "id": str(uuid4()),
                "name": f"{source.name} (Copy)",
                "updated_at": utc_now(),
                "is_active": False,
                "has_snapshots": False,
            },
        )
        plans = self._read_plans()
        plans.append(copy)
        self._write_plans(plans)
        self._notify()
        return copy

    def delete(self, plan_id: str) -> None:
        """Remove a plan; if it was active, promote the first remaining one."""
        was_active = self._active_id() == plan_id
        plans = [p for p in self._read_plans() if p.id != plan_id]
        self._write_plans(plans)

        if was_active:
            if plans:
                self._set_active_id(plans[0].id)
            else:
                self._clear_active_id()
        self._notify()

    def ensure_default_plan(
        self,
        currency: Optional[str] = None,
        name: str = "Default Plan",
    ) -> Optional[DistributionPlan]:
        """
        Seed the default plan on first use.

        Returns the new plan, or None if plans already existed.
        """
        if self._read_plans():
            return None

        plan = DistributionPlan(
            name=name,
            currency=currency,
            targets=[
                DistributionTarget(category=category, target_pct=pct)
                for category, pct in DEFAULT_PLAN_TARGETS.items()
            ],
        )
        self.create(plan)
        self._audit.log_plan_seeded(plan.id, plan.name, plan.currency)
        return self.get(plan.id)

    def clear(self) -> None:
        self._remove_document()
        self._clear_active_id()
        self._notify()

    def list(self) -> list[DistributionPlan]:
        """All plans, active first, then most recently updated first."""
        plans = self._read_plans()
        active_id = self._ensure_active(plans)
        for plan in plans:
            plan.is_active = plan.id == active_id
        return sorted(
            plans,
            key=lambda p: (not p.is_active, -p.updated_at.timestamp()),
        )
