"""
Lock Store

Persists the sparse set of locked periods as ``{"2025-01": true, ...}``.
An absent key and a key mapped to anything other than ``true`` both
mean unlocked.
"""

from typing import Optional

from stewardly.audit import AuditLogger
from stewardly.services.storage import StorageBackend, StorageError
from stewardly.stores.base import JsonDocumentStore


PERIOD_LOCKS_KEY = "period_locks"


class LockStore(JsonDocumentStore):
    """
    Durable boolean membership set over period keys.

    Only the lock service should call ``set_locked``; everything else
    reads.
    """

    store_name = "lock store"
    document_type = dict

    def __init__(
        self,
        backend: StorageBackend,
        audit_logger: Optional[AuditLogger] = None,
        key: str = PERIOD_LOCKS_KEY,
    ):
        super().__init__(backend, key, audit_logger)

    def is_locked(self, period: str) -> bool:
        return self._read_document().get(period) is True

    def locked_periods(self) -> list[str]:
        """All locked periods, ascending."""
        locks = self._read_document()
        return sorted(period for period, locked in locks.items() if locked is True)

    def set_locked(self, period: str, locked: bool) -> bool:
        """
        Lock or unlock a period.

        Unlocking removes the key rather than storing false. The document
        is always rewritten and subscribers are always notified, even when
        nothing changed.

        Returns:
            True if the new state was persisted. A failed write is logged
            and reported here instead of raised.
        """
        locks = self._read_document()
        if locked:
            locks[period] = True
        else:
            locks.pop(period, None)

        persisted = True
        try:
            self._write_document(locks)
        except StorageError as e:
            self._audit.log_store_write_failed(self.store_name, self._key, str(e))
            persisted = False

        self._notify()
        return persisted
