"""
Transaction Store

Dated money movements. Amounts are kept absolute; ``direction`` says
whether money came in or went out. Writes into a locked period are
refused.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from stewardly.audit import AuditLogger
from stewardly.guards import check_period_editable
from stewardly.models.income import MoneyTransaction, TransactionDirection
from stewardly.models.results import LockFailureCode, OperationResult
from stewardly.periods import period_from_date
from stewardly.services.storage import StorageBackend, StorageError
from stewardly.stores.base import JsonDocumentStore
from stewardly.stores.locks import LockStore


TRANSACTIONS_KEY = "transactions"
INCOMING_NOTE = "Income/Refund"


def _normalize_raw(raw: Any) -> Any:
    """Older entries may carry signed amounts or no direction."""
    if not isinstance(raw, dict):
        return raw
    item = dict(raw)
    if item.get("direction") not in ("in", "out"):
        item["direction"] = TransactionDirection.OUT.value
    try:
        item["amount"] = abs(Decimal(str(item.get("amount", 0))))
    except ArithmeticError:
        pass
    return item


class TransactionStore(JsonDocumentStore):
    """Lock-aware list of transactions, newest first."""

    store_name = "transaction store"
    document_type = list

    def __init__(
        self,
        backend: StorageBackend,
        lock_store: LockStore,
        audit_logger: Optional[AuditLogger] = None,
        key: str = TRANSACTIONS_KEY,
    ):
        super().__init__(backend, key, audit_logger)
        self._locks = lock_store

    def _read_transactions(self) -> list[MoneyTransaction]:
        raw_items = self._read_document()
        transactions = []
        for raw in raw_items:
            try:
                transactions.append(MoneyTransaction.model_validate(_normalize_raw(raw)))
            except ValidationError as e:
                self._report_unreadable(self._key, e)

        if len(transactions) != len(raw_items):
            try:
                self._write_transactions(transactions)
            except StorageError as e:
                self._audit.log_store_write_failed(self.store_name, self._key, str(e))
        return transactions

    def _write_transactions(self, transactions: list[MoneyTransaction]) -> None:
        self._write_document([t.model_dump(mode="json") for t in transactions])

    def _commit(self, transactions: list[MoneyTransaction], record_id: Optional[str] = None) -> OperationResult:
        try:
            self._write_transactions(transactions)
        except StorageError as e:
            self._audit.log_store_write_failed(self.store_name, self._key, str(e))
            return OperationResult.failure(
                LockFailureCode.STORAGE_ERROR,
                f"Failed to save transaction: {e}",
            )
        self._notify()
        return OperationResult.success(record_id)

    def add(
        self,
        date: dt.date,
        amount: Decimal,
        direction: TransactionDirection = TransactionDirection.OUT,
        category: Optional[str] = None,
        note: Optional[str] = None,
    ) -> OperationResult:
        guard = check_period_editable(
            self._locks, period_from_date(date), "add transaction", self._audit
        )
        if not guard:
            return guard

        note = (note or "").strip() or None
        try:
            direction = TransactionDirection(direction)
            if note is None and direction == TransactionDirection.IN:
                note = INCOMING_NOTE
            transaction = MoneyTransaction(
                date=date,
                amount=abs(Decimal(str(amount))),
                direction=direction,
                category=category,
                note=note,
            )
        except (ValueError, ArithmeticError) as e:
            return OperationResult.failure(LockFailureCode.VALIDATION_ERROR, str(e))

        transactions = self._read_transactions()
        transactions.append(transaction)
        return self._commit(transactions, transaction.id)

    def delete(self, transaction_id: str) -> OperationResult:
        transactions = self._read_transactions()
        target = next((t for t in transactions if t.id == transaction_id), None)
        if target is None:
            return OperationResult.failure(LockFailureCode.NOT_FOUND, "Transaction not found")

        guard = check_period_editable(
            self._locks, target.period, "delete transaction", self._audit
        )
        if not guard:
            return guard

        return self._commit([t for t in transactions if t.id != transaction_id])

    def clear(self) -> None:
        self._remove_document()
        self._notify()

    def list(self) -> list[MoneyTransaction]:
        return sorted(self._read_transactions(), key=lambda t: t.date, reverse=True)
