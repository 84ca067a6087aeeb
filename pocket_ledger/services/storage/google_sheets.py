"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their accounts and transactions directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the ledger engine handles this with careful ordering
  and compensation)
- The version check is read-then-write, not atomic; it narrows the race
  window rather than closing it
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing ledger logic.
"""

import json
from typing import Any, Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocket_ledger.config import GoogleSheetsSettings, get_settings
from pocket_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocket_ledger.services.storage.interface import (
    ACCOUNTS_TABLE,
    TRANSACTIONS_TABLE,
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
    StoreConnectionError,
)


# Column layout per table; "id" is always the first column
TABLE_COLUMNS: dict[str, list[str]] = {
    ACCOUNTS_TABLE: [
        "id",
        "name",
        "amount",
        "total_income",
        "total_expense",
        "image",
        "user_id",
        "version",
        "created_at",
        "updated_at",
    ],
    TRANSACTIONS_TABLE: [
        "id",
        "type",
        "amount",
        "account_id",
        "date",
        "description",
        "category",
        "receipt_image",
        "user_id",
        "created_at",
        "updated_at",
    ],
}

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
    "error_code",
    "error_message",
]


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
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _sheet_title(self, table: str) -> str:
        titles = {
            ACCOUNTS_TABLE: self._settings.accounts_sheet_name,
            TRANSACTIONS_TABLE: self._settings.transactions_sheet_name,
        }
        try:
            return titles[table]
        except KeyError:
            raise StorageError(f"Unknown table: {table}")

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a table."""
        return self._get_or_create(self._sheet_title(table), TABLE_COLUMNS[table], 1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            5000,  # More rows for audit log
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    One worksheet per table, one record per row, every cell a string.
    Empty cells read back as None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _columns(table: str) -> list[str]:
        try:
            return TABLE_COLUMNS[table]
        except KeyError:
            raise StorageError(f"Unknown table: {table}")

    def _record_to_row(self, table: str, record: dict[str, Any]) -> list[str]:
        """Convert a record to a spreadsheet row."""
        row = []
        for column in self._columns(table):
            value = record.get(column)
            row.append("" if value is None else str(value))
        return row

    def _row_to_record(self, table: str, row: list) -> dict[str, Any]:
        """Convert a spreadsheet row to a record."""
        # Handle missing columns gracefully
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] if row[index] != "" else None
            except IndexError:
                return None

        return {
            column: safe_get(index)
            for index, column in enumerate(self._columns(table))
        }

    def _find_row(self, sheet: gspread.Worksheet, record_id: str) -> tuple[int, list]:
        """Return (1-based sheet row index, row values) for a record id."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == record_id:
                return idx, row
        raise NotFoundError(f"Record not found: {record_id}")

    async def get(self, table: str, record_id: str) -> dict[str, Any]:
        try:
            sheet = self._client.get_table_sheet(table)
            _, row = self._find_row(sheet, record_id)
            return self._row_to_record(table, row)
        except NotFoundError:
            raise NotFoundError(f"{table} record not found: {record_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {table} record: {e}")

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        try:
            sheet = self._client.get_table_sheet(table)
            stored = {**record, "id": record.get("id") or str(uuid4())}
            existing_ids = {row[0] for row in sheet.get_all_values()[1:] if row}
            if stored["id"] in existing_ids:
                raise DuplicateError(f"{table} record already exists: {stored['id']}")
            row = self._record_to_row(table, stored)
            sheet.append_row(row, value_input_option="RAW")
            return self._row_to_record(table, row)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert {table} record: {e}")

    async def update(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        try:
            sheet = self._client.get_table_sheet(table)
            try:
                idx, row = self._find_row(sheet, record_id)
            except NotFoundError:
                raise NotFoundError(f"{table} record not found: {record_id}")

            current = self._row_to_record(table, row)
            updated = {**current, **fields, "id": record_id}
            if expected_version is not None:
                stored_version = int(current.get("version") or 0)
                if stored_version != expected_version:
                    raise ConflictError(
                        f"{table} record {record_id} is at version {stored_version}, "
                        f"expected {expected_version}"
                    )
                updated["version"] = stored_version + 1

            new_row = self._record_to_row(table, updated)
            # Whole row in one RAW write: aggregates and version land together
            sheet.update(
                range_name=f"A{idx}",
                values=[new_row],
                value_input_option="RAW",
            )

            return self._row_to_record(table, new_row)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table} record: {e}")

    async def delete(self, table: str, record_id: str) -> None:
        try:
            sheet = self._client.get_table_sheet(table)
            try:
                idx, _ = self._find_row(sheet, record_id)
            except NotFoundError:
                raise NotFoundError(f"{table} record not found: {record_id}")
            sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {table} record: {e}")

    async def query(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        filters = filters or {}
        try:
            sheet = self._client.get_table_sheet(table)
            all_rows = sheet.get_all_values()[1:]  # Skip header

            records = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue
                record = self._row_to_record(table, row)
                if all(
                    record.get(field) == (None if value is None else str(value))
                    for field, value in filters.items()
                ):
                    records.append(record)

            if order_by:
                records.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=descending)

            if limit is not None:
                records = records[:limit]
            return records
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to query {table}: {e}")


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
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_code=safe_get(9) or None,
            error_message=safe_get(10) or None,
        )

    def _load_events(self, keep) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = self._load_events(
                lambda row: len(row) > 6 and row[6] == str(correlation_id)
            )
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = self._load_events(
                lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
            )
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
            events = self._load_events(lambda row: True)
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
