"""
Snapshot Store

Persists at most one PeriodSnapshot per period key. This layer does not
decide when a snapshot may be written; the lock service does.
"""

from typing import Optional

from pydantic import ValidationError

from stewardly.audit import AuditLogger
from stewardly.models.plan import PeriodSnapshot
from stewardly.services.storage import StorageBackend
from stewardly.stores.base import JsonDocumentStore


PERIOD_SNAPSHOTS_KEY = "period_plan_snapshots"


class SnapshotStore(JsonDocumentStore):
    """Durable map from period key to snapshot."""

    store_name = "snapshot store"
    document_type = dict

    def __init__(
        self,
        backend: StorageBackend,
        audit_logger: Optional[AuditLogger] = None,
        key: str = PERIOD_SNAPSHOTS_KEY,
    ):
        super().__init__(backend, key, audit_logger)

    def _load(self) -> dict[str, PeriodSnapshot]:
        snapshots = {}
        for period, raw in self._read_document().items():
            try:
                snapshots[period] = PeriodSnapshot.model_validate(raw)
            except ValidationError as e:
                self._report_unreadable(f"{self._key}[{period}]", e)
        return snapshots

    def get(self, period: str) -> Optional[PeriodSnapshot]:
        return self._load().get(period)

    def list(self) -> list[PeriodSnapshot]:
        """All snapshots ordered by period ascending."""
        return sorted(self._load().values(), key=lambda s: s.period)

    def references_plan(self, plan_id: str) -> bool:
        return any(s.plan_id == plan_id for s in self._load().values())

    def save(self, snapshot: PeriodSnapshot) -> None:
        """
        Insert or replace the snapshot for ``snapshot.period``.

        Raises:
            StorageError: If the write fails
        """
        document = self._read_document()
        document[snapshot.period] = snapshot.model_dump(mode="json")
        self._write_document(document)
        self._notify()

    def delete(self, period: str) -> None:
        """
        Remove the snapshot for a period, if any.

        Raises:
            StorageError: If the write fails
        """
        document = self._read_document()
        document.pop(period, None)
        self._write_document(document)
        self._notify()
