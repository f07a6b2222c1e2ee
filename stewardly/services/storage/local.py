"""
Local Storage Implementations

DESIGN DECISION: Two backends cover every deployment we have:
- InMemoryStorage for tests and throwaway sessions
- JsonFileStorage for a single user on one machine (one file per key)

TRADEOFFS:
- No cross-process locking; the last writer wins
- No transactions (the lock service compensates by hand)
- Whole documents are rewritten on every change (fine at personal scale)
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stewardly.models.audit import AuditEvent
from stewardly.services.storage.interface import (
    AuditStorageInterface,
    StorageBackend,
    StorageError,
)


KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")

AUDIT_LOG_KEY = "audit_log"

logger = structlog.get_logger(__name__)


class InMemoryStorage(StorageBackend):
    """Dict-backed storage. Contents vanish with the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStorage(StorageBackend):
    """
    One ``<key>.json`` file per storage key inside ``data_dir``.

    Writes go to a temporary file that is then moved into place, so a
    crash mid-write leaves the previous document intact. Transient
    ``OSError`` failures are retried before surfacing as StorageError.
    """

    def __init__(self, data_dir: Path, write_attempts: int = 3):
        self._data_dir = Path(data_dir).resolve()
        self._write_attempts = write_attempts
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._data_dir}: {e}")

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    def _write_file(self, path: Path, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        retryer = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            retryer(self._write_file, path, value)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._data_dir.glob("*.json"))


class BackendAuditStorage(AuditStorageInterface):
    """
    Audit trail kept as one JSON array inside a storage backend.

    Audit events are append-only; once ``max_events`` is reached the
    oldest events are dropped.
    """

    def __init__(self, backend: StorageBackend, max_events: int = 1000):
        self._backend = backend
        self._max_events = max_events

    def _read_raw(self) -> list[dict]:
        raw = self._backend.read(AUDIT_LOG_KEY)
        if not raw:
            return []
        data = json.loads(raw)
        return data if isinstance(data, list) else []

    def _load_events(self) -> list[AuditEvent]:
        try:
            rows = self._read_raw()
        except (StorageError, ValueError) as e:
            logger.warning("audit_log_unreadable", error=str(e))
            return []

        events = []
        for row in rows:
            try:
                events.append(AuditEvent.model_validate(row))
            except ValueError:
                continue
        return events

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            try:
                rows = self._read_raw()
            except ValueError:
                rows = []
            rows.append(event.to_storage_dict())
            rows = rows[-self._max_events:]
            self._backend.write(AUDIT_LOG_KEY, json.dumps(rows))
            return True
        except StorageError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_event_not_persisted", error=str(e), event_id=str(event.event_id))
            return False

    def get_events_for_period(self, period: str) -> list[AuditEvent]:
        events = [e for e in self._load_events() if e.period == period]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._load_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
