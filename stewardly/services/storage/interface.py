"""
Abstract Storage Interface

DESIGN DECISION: Stores talk to a string-keyed map of JSON documents,
the same shape as browser local storage. This allows us to:
1. Keep everything in memory for tests
2. Persist to flat files without changing the stores
3. Swap in another key/value backend later

The interface is intentionally tiny - there are no transactions and no
queries. The lock service builds its own all-or-nothing step on top.
"""

from abc import ABC, abstractmethod
from typing import Optional

from stewardly.models.audit import AuditEvent


class StorageBackend(ABC):
    """
    Abstract key/value backend holding serialized JSON documents.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the raw document stored under a key.

        Args:
            key: Logical storage key

        Returns:
            The raw string, or None if nothing is stored

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """
        Replace the document stored under a key.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Remove a key. Removing a missing key is not an error.

        Raises:
            StorageError: If the removal fails
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List every key currently stored."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_for_period(self, period: str) -> list[AuditEvent]:
        """
        Get all events recorded against a period.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass

