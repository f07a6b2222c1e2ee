"""
Observable JSON document store.

Each store owns one storage key holding one JSON document, and keeps a
list of subscribers that are called synchronously after every write.

DESIGN DECISION: The read path never raises. A document that
cannot be read or parsed is logged locally and treated as the
store's empty value; it is not added to the persisted audit trail,
since reads run on every render.
"""

import json
from typing import Any, Callable, Optional

import structlog

from stewardly.audit import AuditLogger
from stewardly.services.storage import StorageBackend, StorageError


Listener = Callable[[], None]
Unsubscribe = Callable[[], None]

logger = structlog.get_logger(__name__)


class ParseError(ValueError):
    """A stored document is not valid JSON of the expected shape."""
    pass


def parse_document(raw: Optional[str], expected_type: type) -> Any:
    """
    Parse a raw stored document.

    Returns None when nothing is stored.

    Raises:
        ParseError: If the JSON is malformed or of the wrong type
    """
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError as e:
        raise ParseError(f"Malformed JSON: {e}")
    if not isinstance(value, expected_type):
        raise ParseError(
            f"Expected {expected_type.__name__}, found {type(value).__name__}"
        )
    return value


class JsonDocumentStore:
    """
    Base class for stores persisting one JSON document per key.

    Subclasses set ``store_name`` and ``document_type`` and call
    ``_read_document`` / ``_write_document``.
    """

    store_name: str = "store"
    document_type: type = dict

    def __init__(
        self,
        backend: StorageBackend,
        key: str,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._key = key
        self._audit = audit_logger or AuditLogger()
        self._listeners: list[Listener] = []

    @property
    def key(self) -> str:
        return self._key

    def _empty(self) -> Any:
        return self.document_type()

    def _read_document(self) -> Any:
        try:
            value = parse_document(self._backend.read(self._key), self.document_type)
        except (ParseError, StorageError) as e:
            self._report_unreadable(self._key, e)
            return self._empty()
        return self._empty() if value is None else value

    def _report_unreadable(self, key: str, error: Exception) -> None:
        logger.warning("store_read_failed", store=self.store_name, key=key, error=str(error))

    def _write_document(self, value: Any) -> None:
        """
        Persist the document.

        Raises:
            StorageError: If the backend write fails
        """
        self._backend.write(self._key, json.dumps(value))

    def _remove_document(self) -> None:
        self._backend.remove(self._key)

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """
        Register a callback invoked with no arguments after every write.

        Returns:
            A function that removes the callback again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                self._audit.log_listener_failed(self.store_name, str(e))
