"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Users can see their raw data and audit trail directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- A cell holds at most 50,000 characters, so snapshots are split
  across as many cells of their row as needed
- No transactions (a snapshot row is rewritten in a single update)
- Limited query capabilities (we filter audit rows in Python)
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    SnapshotStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Leading columns of the Snapshots sheet; data chunks follow
SNAPSHOT_COLUMNS = [
    "key",
    "updated_at",
    "schema_version",
    "data_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

CELL_CHUNK_SIZE = 45000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=["https://www.googleapis.com/auth/spreadsheets"],
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _worksheet(self, title: str, headers: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(headers))
            sheet.append_row(headers)
        return sheet

    def get_snapshot_sheet(self) -> gspread.Worksheet:
        """Get or create the Snapshots worksheet."""
        return self._worksheet(self._settings.snapshot_sheet_name, SNAPSHOT_COLUMNS, rows=100)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def _find_row(rows: list[list[str]], key: str) -> Optional[int]:
    """1-based sheet row number of key, skipping the header."""
    for idx, row in enumerate(rows[1:], start=2):
        if row and row[0] == key:
            return idx
    return None


class GoogleSheetsSnapshotStorage(SnapshotStorageInterface):
    """
    Google Sheets implementation of snapshot storage.

    One row per store name. The JSON document is split into chunks
    that fill the columns from data_json onwards.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _load(self, key: str) -> Optional[dict]:
        sheet = self._client.get_snapshot_sheet()
        rows = sheet.get_all_values()
        idx = _find_row(rows, key)
        if idx is None:
            return None
        payload = "".join(rows[idx - 1][3:])
        if not payload:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise StorageError(f"Snapshot {key} is not valid JSON: {e}")

    def _save(self, key: str, data: dict) -> None:
        payload = json.dumps(data, ensure_ascii=False)
        chunks = [
            payload[i:i + CELL_CHUNK_SIZE]
            for i in range(0, len(payload), CELL_CHUNK_SIZE)
        ] or [""]
        row = [
            key,
            datetime.utcnow().isoformat(),
            str(data.get("schema_version", "")),
            *chunks,
        ]

        sheet = self._client.get_snapshot_sheet()
        rows = sheet.get_all_values()
        idx = _find_row(rows, key)
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
            return

        # Blank out chunks left over from a longer previous snapshot
        width = max(len(row), len(rows[idx - 1]))
        row.extend([""] * (width - len(row)))
        if sheet.col_count < width:
            sheet.add_cols(width - sheet.col_count)
        sheet.update(
            range_name=f"A{idx}",
            values=[row],
            value_input_option="RAW",
        )

    def _delete(self, key: str) -> bool:
        sheet = self._client.get_snapshot_sheet()
        idx = _find_row(sheet.get_all_values(), key)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True

    async def load_snapshot(self, key: str) -> Optional[dict]:
        try:
            return await asyncio.to_thread(self._load, key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load snapshot: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_snapshot(self, key: str, data: dict) -> bool:
        try:
            await asyncio.to_thread(self._save, key, data)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

    async def delete_snapshot(self, key: str) -> bool:
        try:
            return await asyncio.to_thread(self._delete, key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete snapshot: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self, predicate) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not predicate(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError) as e:
                logger.warning("audit_row_skipped", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, event: AuditEvent) -> None:
        sheet = await asyncio.to_thread(self._client.get_audit_sheet)
        await asyncio.to_thread(
            sheet.append_row, event.to_sheets_row(), value_input_option="RAW"
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await self._append(event)
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = await asyncio.to_thread(
                self._read_events,
                lambda row: len(row) > 6 and row[6] == str(correlation_id),
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = await asyncio.to_thread(self._read_events, lambda row: True)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
