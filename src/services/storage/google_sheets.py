"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a record store backend because:
1. Non-technical users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

Each collection lives in its own worksheet. Row 1 holds the camelCase
field names; every following row is one record.
"""

import json
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.records import (
    AppSettings,
    FinanceTransaction,
    Goal,
    Habit,
    HabitEntry,
    Stock,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    RecordCollectionInterface,
    RecordStoreInterface,
    RecordT,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "description",
    "details_json",
    "error_message",
]


def wire_headers(model: type[RecordT]) -> list[str]:
    """Column headers for a record model, in field order."""
    return [
        field.alias or name
        for name, field in model.model_fields.items()
    ]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def worksheet_prefix(self) -> str:
        return self._settings.worksheet_prefix

    @property
    def audit_sheet_name(self) -> str:
        return self._settings.audit_sheet_name

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
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
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
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(
        self,
        title: str,
        headers: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet whose first row is `headers`."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(headers),
            )
            sheet.append_row(headers)
        return sheet


class GoogleSheetsCollection(RecordCollectionInterface[RecordT]):
    """
    One record collection stored as rows of a worksheet.

    Cells hold plain text; Pydantic coerces them back to the field
    types on read. Empty cells mean "field not set".
    """

    def __init__(self, client: GoogleSheetsClient, model: type[RecordT], title: str):
        self._client = client
        self.model = model
        self._title = title
        self._headers = wire_headers(model)

    def _sheet(self):
        return self._client.get_worksheet(self._title, self._headers)

    def _record_to_row(self, record: RecordT) -> list[str]:
        """Convert a record to a spreadsheet row."""
        wire = record.to_wire()
        row = []
        for header in self._headers:
            value = wire.get(header)
            if value is None:
                row.append("")
            elif isinstance(value, bool):
                row.append("true" if value else "false")
            else:
                row.append(str(value))
        return row

    def _row_to_record(self, header: list[str], row: list[str]) -> RecordT:
        """Convert a spreadsheet row to a record."""
        data = {
            column: cell
            for column, cell in zip(header, row)
            if cell != ""
        }
        return self.model.model_validate(data)

    def _read(self) -> list[tuple[int, RecordT]]:
        """(sheet row number, record) for every non-empty row."""
        all_rows = self._sheet().get_all_values()
        if not all_rows:
            return []
        header = all_rows[0]
        records = []
        # Row 1 is the header
        for idx, row in enumerate(all_rows[1:], start=2):
            if not row or not row[0]:
                continue
            records.append((idx, self._row_to_record(header, row)))
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def add(self, record: RecordT) -> RecordT:
        try:
            if any(existing.id == record.id for _, existing in self._read()):
                raise DuplicateError(f"{self.model.__name__} already exists: {record.id}")
            self._sheet().append_row(self._record_to_row(record), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {self._title} record: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def bulk_add(self, records: list[RecordT]) -> int:
        if not records:
            return 0
        try:
            existing_ids = {existing.id for _, existing in self._read()}
            for record in records:
                if record.id in existing_ids:
                    raise DuplicateError(f"{self.model.__name__} already exists: {record.id}")
                existing_ids.add(record.id)
            rows = [self._record_to_row(record) for record in records]
            self._sheet().append_rows(rows, value_input_option="RAW")
            return len(rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {self._title} records: {e}")

    async def get(self, record_id: str) -> Optional[RecordT]:
        try:
            for _, record in self._read():
                if record.id == record_id:
                    return record
            return None
        except Exception as e:
            raise StorageError(f"Failed to get {self._title} record: {e}")

    async def update(self, record_id: str, fields: dict[str, Any]) -> Optional[RecordT]:
        try:
            sheet = self._sheet()
            for idx, record in self._read():
                if record.id != record_id:
                    continue
                merged = {**record.model_dump(), **fields, "id": record_id}
                updated = self.model.model_validate(merged)
                for col_idx, value in enumerate(self._record_to_row(updated), start=1):
                    sheet.update_cell(idx, col_idx, value)
                return updated
            return None
        except Exception as e:
            raise StorageError(f"Failed to update {self._title} record: {e}")

    async def delete(self, record_id: str) -> bool:
        try:
            for idx, record in self._read():
                if record.id == record_id:
                    self._sheet().delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete {self._title} record: {e}")

    async def delete_where(self, field: str, value: Any) -> int:
        try:
            doomed = [
                idx for idx, record in self._read()
                if getattr(record, field, None) == value
            ]
            sheet = self._sheet()
            # Bottom-up so earlier row numbers stay valid
            for idx in reversed(doomed):
                sheet.delete_rows(idx)
            return len(doomed)
        except Exception as e:
            raise StorageError(f"Failed to delete {self._title} records: {e}")

    async def all(self) -> list[RecordT]:
        try:
            return [record for _, record in self._read()]
        except Exception as e:
            raise StorageError(f"Failed to list {self._title}: {e}")

    async def range_by_field(
        self,
        field: str,
        lower: Any,
        upper: Any,
        inclusive: bool = True,
    ) -> list[RecordT]:
        records = await self.all()
        matches = []
        for record in records:
            value = getattr(record, field, None)
            if value is None:
                continue
            if inclusive and lower <= value <= upper:
                matches.append(record)
            elif not inclusive and lower < value < upper:
                matches.append(record)
        return matches

    async def clear(self) -> None:
        try:
            sheet = self._sheet()
            sheet.clear()
            sheet.append_row(self._headers)
        except Exception as e:
            raise StorageError(f"Failed to clear {self._title}: {e}")


class GoogleSheetsRecordStore(RecordStoreInterface):
    """All six collections, one worksheet each."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        prefix = self._client.worksheet_prefix
        self.habits = GoogleSheetsCollection(self._client, Habit, f"{prefix}habits")
        self.habit_entries = GoogleSheetsCollection(
            self._client, HabitEntry, f"{prefix}habit_entries"
        )
        self.goals = GoogleSheetsCollection(self._client, Goal, f"{prefix}goals")
        self.stocks = GoogleSheetsCollection(self._client, Stock, f"{prefix}stocks")
        self.transactions = GoogleSheetsCollection(
            self._client, FinanceTransaction, f"{prefix}transactions"
        )
        self.settings = GoogleSheetsCollection(self._client, AppSettings, f"{prefix}settings")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self):
        return self._client.get_worksheet(
            self._client.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )

    def _event_to_row(self, event: AuditEvent) -> list:
        """Convert an AuditEvent to a spreadsheet row."""
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.entity_type or "",
            event.entity_id or "",
            event.description,
            json.dumps(event.details) if event.details else "",
            event.error_message or "",
        ]

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=safe_get(0),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            description=safe_get(6),
            details=json.loads(safe_get(7)) if safe_get(7) else {},
            error_message=safe_get(8) or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            all_rows = self._sheet().get_all_values()[1:]
            events = [
                self._row_to_event(row)
                for row in all_rows
                if len(row) > 5 and row[4] == entity_type and row[5] == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = self._sheet().get_all_values()[1:]
            events = [self._row_to_event(row) for row in all_rows if row and row[0]]
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
