"""
Snapshot-Aware Plan Resolver

DESIGN DECISION: One read path decides which plan governs a period.
Dashboards and reports ask the resolver instead of branching on lock
state themselves.

- All-time view (no period): the live active plan
- Locked period with a snapshot: the snapshot
- Locked period without a snapshot: nothing (the caller checks
  ``has_snapshot`` to tell this apart from "no plan at all")
- Unlocked period: the live active plan

The resolver never writes. It is safe to call on every render.
"""

from typing import Optional

from stewardly.models.plan import DistributionPlan, PeriodSnapshot, PlanSource, ResolvedPlan
from stewardly.stores.locks import LockStore
from stewardly.stores.plans import PlanStore
from stewardly.stores.snapshots import SnapshotStore


def _from_live(plan: DistributionPlan) -> ResolvedPlan:
    return ResolvedPlan(
        currency=plan.currency,
        targets=list(plan.targets),
        source=PlanSource.LIVE,
        plan_id=plan.id,
        plan_name=plan.name,
    )


def _from_snapshot(snapshot: PeriodSnapshot) -> ResolvedPlan:
    return ResolvedPlan(
        currency=snapshot.currency,
        targets=list(snapshot.targets),
        source=PlanSource.SNAPSHOT,
        locked_at=snapshot.locked_at,
        plan_id=snapshot.plan_id,
        plan_name=snapshot.plan_name,
    )


class PlanResolver:
    """Picks the snapshot or the live plan for a period."""

    def __init__(
        self,
        plan_store: PlanStore,
        lock_store: LockStore,
        snapshot_store: SnapshotStore,
    ):
        self._plans = plan_store
        self._locks = lock_store
        self._snapshots = snapshot_store

    def _live(self) -> Optional[ResolvedPlan]:
        plan = self._plans.get_active(repair=False)
        return _from_live(plan) if plan else None

    def resolve_plan_for_period(self, period: Optional[str]) -> Optional[ResolvedPlan]:
        """
        Resolve the plan governing ``period``.

        Args:
            period: YYYY-MM key, or None for the all-time view

        Returns:
            The resolved plan, or None if no plan applies
        """
        if not period:
            return self._live()

        if self._locks.is_locked(period):
            snapshot = self._snapshots.get(period)
            return _from_snapshot(snapshot) if snapshot else None

        return self._live()

    def is_snapshot_missing(self, period: str) -> bool:
        """Locked but without a snapshot: needs regeneration before reports render."""
        return self._locks.is_locked(period) and self._snapshots.get(period) is None
