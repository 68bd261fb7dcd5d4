"""Services package."""

from src.services.ocr import (
    InvalidImageError,
    RecognitionEngine,
    RecognitionError,
    RecognitionInitError,
)
from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsSnapshotStorage,
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
    NotFoundError,
    SnapshotStorageInterface,
    SnapshotVersionError,
    StorageError,
)

__all__ = [
    # Recognition services
    "InvalidImageError",
    "RecognitionEngine",
    "RecognitionError",
    "RecognitionInitError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsSnapshotStorage",
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
    "NotFoundError",
    "SnapshotStorageInterface",
    "SnapshotVersionError",
    "StorageError",
]
