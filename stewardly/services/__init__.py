"""Services package."""

from stewardly.services.storage import (
    AUDIT_LOG_KEY,
    AuditStorageInterface,
    BackendAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageBackend,
    StorageError,
)

__all__ = [
    # Storage services
    "AUDIT_LOG_KEY",
    "AuditStorageInterface",
    "BackendAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "StorageBackend",
    "StorageError",
]
