"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. The user can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions or atomic increments. The balance adjustment is a
  read-modify-write guarded by a process-local lock; two processes
  writing the same profile can still lose an update.
- Limited query capabilities (we filter in Python)

Every collection lives in its own worksheet with one record per row.
Columns are the model's field names, so one generic store serves all
record kinds.
"""

import asyncio
import json
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from thara.config import get_settings
from thara.models.audit import AuditEvent, AuditEventType, AuditSeverity
from thara.models.ledger import Asset, Goal, Obligation, Transaction, UserProfile
from thara.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntityStoreInterface,
    InvalidFieldError,
    LedgerStorage,
    NotFoundError,
    ProfileStorageInterface,
    RecordT,
    StorageError,
    apply_update,
    sort_records,
)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Caller errors are not retried; only backend failures are.
_retry_policy = retry(
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError, InvalidFieldError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def model_columns(model_type: type[BaseModel]) -> list[str]:
    """Sheet columns for a model: the key field first, then the rest in declaration order."""
    columns = list(model_type.model_fields)
    for key in ("id", "uid"):
        if key in columns:
            columns.remove(key)
            return [key] + columns
    return columns


def record_to_row(record: BaseModel) -> list[str]:
    """Convert a record to a spreadsheet row of strings."""
    data = record.model_dump(mode="json")
    row = []
    for column in model_columns(type(record)):
        value = data[column]
        if value is None:
            row.append("")
        elif isinstance(value, bool):
            row.append("true" if value else "false")
        else:
            row.append(str(value))
    return row


def row_to_record(model_type: type[BaseModel], row: list) -> BaseModel:
    """Convert a spreadsheet row back into a validated record."""
    columns = model_columns(model_type)
    data = {
        column: row[index]
        for index, column in enumerate(columns)
        if index < len(row) and row[index] != ""
    }
    return model_type.model_validate(data)


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
    def settings(self):
        return self._settings

    @_retry_policy
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

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet whose first row holds `columns`."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class _SheetTable:
    """Row lookup helpers shared by the record and profile stores."""

    def __init__(self, client: GoogleSheetsClient, sheet_name: str, model_type: type[BaseModel]):
        self._client = client
        self._sheet_name = sheet_name
        self._model_type = model_type

    @property
    def model_type(self) -> type[BaseModel]:
        return self._model_type

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name, model_columns(self._model_type))

    def find_row(self, key: str) -> tuple[Optional[int], Optional[list]]:
        """Return (1-based row index, row) of the row whose first cell is `key`."""
        all_rows = self.sheet().get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == key:
                return idx, row
        return None, None

    def write_row(self, idx: int, record: BaseModel) -> None:
        """Overwrite row `idx` with a single RAW write."""
        self.write_cells(idx, 1, record_to_row(record))

    def write_cells(self, idx: int, col: int, values: list[str]) -> None:
        self.sheet().update(
            range_name=rowcol_to_a1(idx, col),
            values=[values],
            value_input_option="RAW",
        )

    def all_records(self) -> list[BaseModel]:
        records = []
        for row in self.sheet().get_all_values()[1:]:
            if not row or not row[0]:  # Skip empty rows
                continue
            records.append(row_to_record(self._model_type, row))
        return records


class GoogleSheetsEntityStore(EntityStoreInterface[RecordT]):
    """
    Google Sheets implementation of one record collection.

    The first column is always the record id.
    """

    def __init__(
        self,
        model_type: type[RecordT],
        sheet_name: str,
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._table = _SheetTable(client or GoogleSheetsClient(), sheet_name, model_type)

    @_retry_policy
    async def create(self, record: RecordT) -> UUID:
        try:
            idx, _ = self._table.find_row(str(record.id))
            if idx is not None:
                raise DuplicateError(f"Record already exists: {record.id}")
            self._table.sheet().append_row(record_to_row(record), value_input_option="RAW")
            return record.id
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}")

    async def get(self, record_id: UUID) -> Optional[RecordT]:
        try:
            _, row = self._table.find_row(str(record_id))
            if row is None:
                return None
            return row_to_record(self._table.model_type, row)
        except Exception as e:
            raise StorageError(f"Failed to get record: {e}")

    async def update(self, record_id: UUID, fields: dict[str, Any]) -> RecordT:
        try:
            idx, row = self._table.find_row(str(record_id))
            if idx is None:
                raise NotFoundError(f"Record not found: {record_id}")
            updated = apply_update(row_to_record(self._table.model_type, row), fields)
            self._table.write_row(idx, updated)
            return updated
        except (NotFoundError, InvalidFieldError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update record: {e}")

    async def delete(self, record_id: UUID) -> bool:
        try:
            idx, _ = self._table.find_row(str(record_id))
            if idx is None:
                return False
            self._table.sheet().delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}")

    async def list_by_user(
        self,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[RecordT]:
        try:
            owned = [r for r in self._table.all_records() if r.user_id == user_id]
        except Exception as e:
            raise StorageError(f"Failed to list records: {e}")
        return sort_records(owned, order_by, descending)


class GoogleSheetsProfileStore(ProfileStorageInterface):
    """Google Sheets implementation of profile storage (first column: uid)."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._table = _SheetTable(client, client.settings.users_sheet_name, UserProfile)
        self._lock = asyncio.Lock()

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            _, row = self._table.find_row(uid)
            return row_to_record(UserProfile, row) if row is not None else None
        except Exception as e:
            raise StorageError(f"Failed to get profile: {e}")

    @_retry_policy
    async def create_profile(self, profile: UserProfile) -> bool:
        try:
            idx, _ = self._table.find_row(profile.uid)
            if idx is not None:
                raise DuplicateError(f"Profile already exists: {profile.uid}")
            self._table.sheet().append_row(record_to_row(profile), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save profile: {e}")

    async def update_profile(self, uid: str, fields: dict[str, Any]) -> UserProfile:
        async with self._lock:
            try:
                idx, row = self._table.find_row(uid)
                if idx is None:
                    raise NotFoundError(f"Profile not found: {uid}")
                updated = apply_update(row_to_record(UserProfile, row), fields)
                self._table.write_row(idx, updated)
                return updated
            except (NotFoundError, InvalidFieldError):
                raise
            except Exception as e:
                raise StorageError(f"Failed to update profile: {e}")

    async def adjust_balance(self, uid: str, delta: Decimal) -> Decimal:
        async with self._lock:
            try:
                idx, row = self._table.find_row(uid)
                if idx is None:
                    raise NotFoundError(f"Profile not found: {uid}")
                profile = row_to_record(UserProfile, row)
                new_balance = profile.balance + delta
                balance_col = model_columns(UserProfile).index("balance") + 1
                self._table.write_cells(idx, balance_col, [str(new_balance)])
                return new_balance
            except NotFoundError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to adjust balance: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

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
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if row and row[0]:
                events.append(self._row_to_event(row))
        return events

    @_retry_policy
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_sheets_storage(client: Optional[GoogleSheetsClient] = None) -> LedgerStorage:
    """Build a LedgerStorage backed by one worksheet per collection."""
    client = client or GoogleSheetsClient()
    names = client.settings
    return LedgerStorage(
        profiles=GoogleSheetsProfileStore(client),
        transactions=GoogleSheetsEntityStore(Transaction, names.transactions_sheet_name, client),
        obligations=GoogleSheetsEntityStore(Obligation, names.obligations_sheet_name, client),
        goals=GoogleSheetsEntityStore(Goal, names.goals_sheet_name, client),
        assets=GoogleSheetsEntityStore(Asset, names.assets_sheet_name, client),
    )
