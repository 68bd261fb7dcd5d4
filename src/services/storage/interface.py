"""
Abstract Storage Interface

DESIGN DECISION: The whole application state is persisted as one
named snapshot (a key-value blob keyed by the store name). It is
loaded at startup and written back after every mutation.

Defining an interface allows us to:
1. Keep a local JSON file as the default backend
2. Use Google Sheets when the user wants the data visible there
3. Use in-memory storage for testing
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for state snapshot storage.

    Snapshots are plain JSON-compatible dicts; encoding the ledger
    state into them is src.services.storage.snapshot's job.
    """

    @abstractmethod
    async def load_snapshot(self, key: str) -> Optional[dict]:
        """
        Load the snapshot stored under key.

        Returns:
            The snapshot, or None if nothing is stored yet

        Raises:
            StorageError: If the backend fails or the data is corrupt
        """
        pass

    @abstractmethod
    async def save_snapshot(self, key: str, data: dict) -> bool:
        """
        Replace the snapshot stored under key.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_snapshot(self, key: str) -> bool:
        """
        Delete the snapshot stored under key.

        Returns:
            True if something was deleted, False if nothing was stored
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class SnapshotVersionError(StorageError):
    """Snapshot was written by a newer schema than this code understands."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Snapshot schema version {found} is newer than supported version {supported}"
        )
