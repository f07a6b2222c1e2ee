"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements in-memory and flat JSON file backends, designed to be swappable.
"""

from stewardly.services.storage.interface import (
    AuditStorageInterface,
    StorageBackend,
    StorageError,
)
from stewardly.services.storage.local import (
    AUDIT_LOG_KEY,
    BackendAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StorageBackend",
    # Exceptions
    "StorageError",
    # Local implementations
    "AUDIT_LOG_KEY",
    "BackendAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
]
