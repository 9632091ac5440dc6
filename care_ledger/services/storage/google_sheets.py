"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Facility staff can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (one facility's ledger is fine)
- No transactions: a batch insert is one append call, which Sheets
  applies as a unit, but updates and deletes are cell/row operations
- Limited query capabilities (we filter in Python)

Each table is one worksheet whose first row holds the column names.
The implementation follows the abstract interface, so we can swap
to PostgreSQL later without changing ledger logic.
"""

import json
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from care_ledger.config import get_settings
from care_ledger.services.storage.interface import (
    AuthenticationError,
    ConnectionError,
    DataGatewayInterface,
    NotFoundError,
    Row,
    StorageError,
    column_value,
)


_RECORD_COLUMNS = ["id", "created_at", "updated_at", "user_id", "organization_id"]

# Column mappings, one worksheet per table
TABLE_COLUMNS: dict[str, list[str]] = {
    "monthly_fees": _RECORD_COLUMNS + [
        "resident_id",
        "amount",
        "due_date",
        "paid_date",
        "discount",
        "late_fee",
        "status",
        "observations",
        "payment_method",
        "month",
        "year",
    ],
    "accounts_payable": _RECORD_COLUMNS + [
        "description",
        "category",
        "supplier",
        "amount",
        "due_date",
        "paid_date",
        "payment_method",
        "cost_center",
        "status",
        "observations",
        "attachments",
        "is_recurring",
        "recurring_frequency",
    ],
    "accounts_receivable": _RECORD_COLUMNS + [
        "description",
        "source",
        "client",
        "amount",
        "due_date",
        "received_date",
        "payment_method",
        "status",
        "observations",
    ],
    "residents": _RECORD_COLUMNS + [
        "name",
        "monthly_fee_amount",
    ],
    "audit_log": _RECORD_COLUMNS + [
        "event_id",
        "timestamp",
        "event_type",
        "severity",
        "entity_type",
        "entity_id",
        "correlation_id",
        "description",
        "details",
        "error_code",
        "error_message",
    ],
}

# Columns holding lists, stored as JSON text
JSON_COLUMNS = {"attachments"}

AUTH_STATUS_CODES = {401, 403}


def _translate_error(operation: str, error: Exception) -> StorageError:
    """Map a gspread/transport failure onto the storage error taxonomy."""
    if isinstance(error, StorageError):
        return error
    if isinstance(error, gspread.exceptions.APIError):
        code = getattr(error, "code", None)
        if code in AUTH_STATUS_CODES:
            return AuthenticationError(
                f"Google Sheets rejected the credentials during {operation}: {error}",
                code=str(code),
            )
        return StorageError(
            f"Failed to {operation}: {error}",
            code=str(code) if code is not None else None,
        )
    if isinstance(error, OSError):
        return ConnectionError(f"NetworkError during {operation}: {error}")
    return StorageError(f"Failed to {operation}: {error}")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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
                raise AuthenticationError(
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

    def get_worksheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a table."""
        columns = TABLE_COLUMNS[table]
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(table)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=table,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsGateway(DataGatewayInterface):
    """
    Google Sheets implementation of the data gateway.

    Values are stored as text; the models parse them back on read.
    Empty cells read back as None.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._clock = clock or datetime.utcnow

    @staticmethod
    def _columns(table: str) -> list[str]:
        try:
            return TABLE_COLUMNS[table]
        except KeyError:
            raise StorageError(f"Unknown table: {table}")

    def _row_to_cells(self, table: str, row: Row) -> list[str]:
        """Convert a row dict to worksheet cells in column order."""
        cells = []
        for column in self._columns(table):
            value = row.get(column)
            if column in JSON_COLUMNS:
                cells.append(json.dumps(value if value is not None else []))
            elif value is None:
                cells.append("")
            else:
                cells.append(str(column_value(value)))
        return cells

    def _cells_to_row(self, table: str, cells: list[str]) -> Row:
        """Convert worksheet cells to a row dict."""
        # Handle missing columns gracefully
        def safe_get(index: int) -> str:
            try:
                return cells[index]
            except IndexError:
                return ""

        row: Row = {}
        for index, column in enumerate(self._columns(table)):
            raw = safe_get(index)
            if column in JSON_COLUMNS:
                row[column] = json.loads(raw) if raw else []
            else:
                row[column] = raw if raw != "" else None
        return row

    @staticmethod
    def _matches(row: Row, filters: Optional[dict[str, Any]]) -> bool:
        if not filters:
            return True
        for column, value in filters.items():
            expected = "" if value is None else str(column_value(value))
            actual = "" if row.get(column) is None else str(row.get(column))
            if actual != expected:
                return False
        return True

    def _read_all(self, table: str) -> tuple[gspread.Worksheet, list[tuple[int, Row]]]:
        """All data rows with their 1-based sheet row index."""
        sheet = self._client.get_worksheet(table)
        values = sheet.get_all_values()
        rows = []
        # Row 1 is the header
        for idx, cells in enumerate(values[1:], start=2):
            if cells and cells[0]:
                rows.append((idx, self._cells_to_row(table, cells)))
        return sheet, rows

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: Optional[list[str]] = None,
    ) -> list[Row]:
        try:
            _, indexed = self._read_all(table)
        except Exception as e:
            raise _translate_error(f"read {table}", e)

        rows = [row for _, row in indexed if self._matches(row, filters)]

        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing

        if columns:
            rows = [{c: r.get(c) for c in columns} for r in rows]

        return rows

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        if not rows:
            raise StorageError("Nothing to insert")

        now = self._clock().isoformat()
        stored = []
        for row in rows:
            record = dict(row)
            record.setdefault("id", str(uuid4()))
            record["created_at"] = now
            record["updated_at"] = now
            stored.append(record)

        try:
            sheet = self._client.get_worksheet(table)
            # One append call for the whole batch
            sheet.append_rows(
                [self._row_to_cells(table, record) for record in stored],
                value_input_option="RAW",
            )
        except Exception as e:
            raise _translate_error(f"insert into {table}", e)

        return [
            self._cells_to_row(table, self._row_to_cells(table, record))
            for record in stored
        ]

    async def update(
        self,
        table: str,
        values: Row,
        filters: dict[str, Any],
    ) -> Row:
        columns = self._columns(table)
        try:
            sheet, indexed = self._read_all(table)
            matches = [(idx, row) for idx, row in indexed if self._matches(row, filters)]

            if not matches:
                raise NotFoundError(f"No {table} row matches {filters}")
            if len(matches) > 1:
                raise StorageError(
                    f"Update matched {len(matches)} {table} rows, expected one"
                )

            idx, row = matches[0]
            row.update(values)
            row["updated_at"] = self._clock().isoformat()
            cells = self._row_to_cells(table, row)

            for column in list(values) + ["updated_at"]:
                if column not in columns:
                    raise StorageError(f"Unknown column {column} for {table}")
                col_idx = columns.index(column)
                sheet.update_cell(idx, col_idx + 1, cells[col_idx])

            return self._cells_to_row(table, cells)
        except Exception as e:
            raise _translate_error(f"update {table}", e)

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        try:
            sheet, indexed = self._read_all(table)
            targets = [idx for idx, row in indexed if self._matches(row, filters)]
            # Bottom-up so earlier indices stay valid
            for idx in sorted(targets, reverse=True):
                sheet.delete_rows(idx)
            return len(targets)
        except Exception as e:
            raise _translate_error(f"delete from {table}", e)
