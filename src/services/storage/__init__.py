"""
Storage Services Package

Provides abstract interfaces and concrete implementations for snapshot
and audit storage. A local JSON file is the default snapshot backend;
Google Sheets can be used instead.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    SnapshotStorageInterface,
    SnapshotVersionError,
    StorageError,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsSnapshotStorage,
)
from src.services.storage.json_file import (
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
)
from src.services.storage.snapshot import dump_state, load_state

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "SnapshotVersionError",
    "StorageError",
    # Snapshot codec
    "dump_state",
    "load_state",
    # Local implementations
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsSnapshotStorage",
]
