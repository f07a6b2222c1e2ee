"""
Income Store

Stored income records. Every write is refused while the record's period
is locked; an edit that moves a record between periods needs both the
old and the new period unlocked.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError

from stewardly.audit import AuditLogger
from stewardly.guards import check_period_editable
from stewardly.models.income import IncomeInput, IncomeRecord
from stewardly.models.results import LockFailureCode, OperationResult
from stewardly.periods import period_from_date, utc_now
from stewardly.services.storage import StorageBackend, StorageError
from stewardly.stores.base import JsonDocumentStore
from stewardly.stores.locks import LockStore
from stewardly.validation import first_error, validate_income_input


INCOME_KEY = "income"

# Fields a caller may set; id and timestamps are owned by the store
EDITABLE_FIELDS = set(IncomeInput.model_fields)

IncomePatch = Union[IncomeInput, dict[str, Any]]


class IncomeStore(JsonDocumentStore):
    """
    Lock-aware CRUD over stored income records.

    Records that no longer validate are dropped on read and the cleaned
    list is written back.
    """

    store_name = "income store"
    document_type = list

    def __init__(
        self,
        backend: StorageBackend,
        lock_store: LockStore,
        audit_logger: Optional[AuditLogger] = None,
        key: str = INCOME_KEY,
    ):
        super().__init__(backend, key, audit_logger)
        self._locks = lock_store

    def _read_records(self) -> list[IncomeRecord]:
        raw_items = self._read_document()
        records = []
        for raw in raw_items:
            try:
                records.append(IncomeRecord.model_validate(raw))
            except ValidationError as e:
                self._report_unreadable(self._key, e)

        if len(records) != len(raw_items):
            try:
                self._write_records(records)
            except StorageError as e:
                self._audit.log_store_write_failed(self.store_name, self._key, str(e))
        return records

    def _write_records(self, records: list[IncomeRecord]) -> None:
        self._write_document([r.model_dump(mode="json") for r in records])

    def _commit(self, records: list[IncomeRecord], record_id: Optional[str] = None) -> OperationResult:
        try:
            self._write_records(records)
        except StorageError as e:
            self._audit.log_store_write_failed(self.store_name, self._key, str(e))
            return OperationResult.failure(
                LockFailureCode.STORAGE_ERROR,
                f"Failed to save income: {e}",
            )
        self._notify()
        return OperationResult.success(record_id)

    def _guard(self, period: str, action: str) -> OperationResult:
        return check_period_editable(self._locks, period, action, self._audit)

    @staticmethod
    def _invalid(data: IncomeInput) -> Optional[OperationResult]:
        issue = first_error(validate_income_input(data))
        if issue is None:
            return None
        return OperationResult.failure(LockFailureCode.VALIDATION_ERROR, issue.message)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, income_id: str) -> Optional[IncomeRecord]:
        return next((r for r in self._read_records() if r.id == income_id), None)

    def for_period(self, period: str) -> list[IncomeRecord]:
        """Stored records dated inside ``period``."""
        return [r for r in self.list() if r.period == period]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add(self, data: IncomeInput) -> OperationResult:
        """
        Store a new income record.

        Returns:
            Success carrying the new record id, or the reason it was refused
        """
        invalid = self._invalid(data)
        if invalid is not None:
            return invalid

        guard = self._guard(period_from_date(data.date), "add income")
        if not guard:
            return guard

        now = utc_now()
        record = IncomeRecord(**data.model_dump(), created_at=now, updated_at=now)

        records = self._read_records()
        records.append(record)
        return self._commit(records, record.id)

    def update(self, income_id: str, patch: IncomePatch) -> OperationResult:
        """Apply a partial edit. ``id`` and ``created_at`` never change."""
        records = self._read_records()
        index = next((i for i, r in enumerate(records) if r.id == income_id), None)
        if index is None:
            return OperationResult.failure(LockFailureCode.NOT_FOUND, "Income record not found")
        current = records[index]

        guard = self._guard(current.period, "edit income")
        if not guard:
            return guard

        if isinstance(patch, IncomeInput):
            changes = patch.model_dump(exclude_unset=True)
        else:
            changes = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS}

        try:
            merged = IncomeInput.model_validate(
                {**current.model_dump(include=EDITABLE_FIELDS), **changes}
            )
        except ValidationError as e:
            return OperationResult.failure(LockFailureCode.VALIDATION_ERROR, str(e))

        invalid = self._invalid(merged)
        if invalid is not None:
            return invalid

        guard = self._guard(period_from_date(merged.date), "edit income")
        if not guard:
            return guard

        records[index] = IncomeRecord(
            **merged.model_dump(),
            id=current.id,
            created_at=current.created_at,
            updated_at=utc_now(),
        )
        return self._commit(records, current.id)

    def delete(self, income_id: str) -> OperationResult:
        records = self._read_records()
        record = next((r for r in records if r.id == income_id), None)
        if record is None:
            return OperationResult.failure(LockFailureCode.NOT_FOUND, "Income record not found")

        guard = self._guard(record.period, "delete income")
        if not guard:
            return guard

        return self._commit([r for r in records if r.id != income_id])

    def clear(self) -> None:
        self._remove_document()
        self._notify()

    def list(self) -> list[IncomeRecord]:
        """Newest first by date, then by creation time."""
        return sorted(
            self._read_records(),
            key=lambda r: (r.date, r.created_at.isoformat()),
            reverse=True,
        )
