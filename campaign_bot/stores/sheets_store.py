"""
Google Sheets row store — first worksheet of a spreadsheet, header on row 1.

Keeps an in-memory copy of the sheet (headers, rows, and a map from ordinal
row id to the sheet's own row number, which diverges from the id whenever the
sheet has blank rows). The cache is reused across calls and dropped on a
structural change (column insert) or close().

Row writes always overwrite the full row range with every column's value, as
the values API replaces the whole range in one request.
"""
import logging
import os
import threading
from typing import Any, Dict, List, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1

from campaign_bot.config import GOOGLE_SHEETS_SCOPES
from campaign_bot.errors import ConfigurationError, RowNotFound, StorageUnavailable
from campaign_bot.models.contact import ContactRow, format_cell, is_blank_row, resolve_column
from campaign_bot.services.circuit_breaker import CircuitOpenError, get_breaker
from campaign_bot.stores.base import RowStore, resolve_fields

logger = logging.getLogger('stores.sheets')

HEADER_ROW = 1
FIRST_DATA_ROW = 2

_API_ERRORS = (
    gspread.exceptions.GSpreadException,
    GoogleAuthError,
    requests.RequestException,
    CircuitOpenError,
    OSError,
)


class GoogleSheetsRowStore(RowStore):

    def __init__(self, spreadsheet_id: str, credentials_path: str, client=None):
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self._client = client
        self._owns_client = client is None
        self._worksheet = None
        self._lock = threading.RLock()
        self._invalidate()
        logger.info("GoogleSheetsRowStore initialized for spreadsheet %s", spreadsheet_id)

    # ── Public API ────────────────────────────────────────────────────

    def list(self) -> List[ContactRow]:
        with self._lock:
            self._ensure_loaded()
            return [ContactRow(row.row_id, row) for row in self._rows]

    def get(self, row_id: int) -> Optional[ContactRow]:
        with self._lock:
            self._ensure_loaded()
            row = self._row_by_id.get(row_id)
            return ContactRow(row.row_id, row) if row is not None else None

    def update(self, row_id: int, fields: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_loaded()
            if row_id not in self._row_by_id:
                raise RowNotFound(row_id)

            fields = resolve_fields(self._headers, fields)
            missing = [c for c in fields if c not in self._headers]
            for column in missing:
                self._ensure_loaded()
                self._insert_column(column)
            if missing:
                self._ensure_loaded()
                if row_id not in self._row_by_id:
                    raise RowNotFound(row_id)

            row = self._row_by_id[row_id]
            row.update({k: format_cell(v) for k, v in fields.items()})
            values = [format_cell(row.get(h, '')) for h in self._headers]

            address = self._addresses[row_id]
            cell_range = f"A{address}:{rowcol_to_a1(address, len(self._headers))}"
            self._call('update row', self._open_worksheet().update, range_name=cell_range, values=[values])
        logger.info("Updated row %d at sheet row %d (%s)", row_id, address, ', '.join(fields))

    def add_column(self, name: str) -> None:
        with self._lock:
            self._ensure_loaded()
            if resolve_column(self._headers, name) in self._headers:
                logger.warning("Column %s already exists", name)
                return
            self._insert_column(name)

    def close(self) -> None:
        with self._lock:
            self._invalidate()
            self._worksheet = None
            if self._owns_client:
                self._client = None
        logger.debug("GoogleSheetsRowStore closed")

    # ── Cache ─────────────────────────────────────────────────────────

    def _invalidate(self):
        self._headers = None
        self._rows = []
        self._row_by_id = {}
        self._addresses = {}

    def _ensure_loaded(self):
        if self._headers is not None:
            return
        values = self._call('read', self._open_worksheet().get_all_values)
        headers = list(values[0]) if values else []

        rows, addresses = [], {}
        row_id = 0
        for sheet_row, raw in enumerate(values[1:], start=FIRST_DATA_ROW):
            raw = list(raw) + [''] * (len(headers) - len(raw))
            record = dict(zip(headers, raw))
            if is_blank_row(record.values()):
                continue
            row_id += 1
            rows.append(ContactRow(row_id, record))
            addresses[row_id] = sheet_row

        self._headers = headers
        self._rows = rows
        self._row_by_id = {row.row_id: row for row in rows}
        self._addresses = addresses
        logger.info("Loaded %d rows from Google Sheets", len(rows))

    # ── API access ────────────────────────────────────────────────────

    def _open_worksheet(self):
        if self._worksheet is not None:
            return self._worksheet
        if not self.spreadsheet_id:
            raise ConfigurationError('GOOGLE_SHEETS_ID not configured')
        if self._client is None:
            if not self.credentials_path:
                raise ConfigurationError('GOOGLE_SERVICE_ACCOUNT_PATH not configured')
            if not os.path.isfile(self.credentials_path):
                raise ConfigurationError(f"Service account file not found: {self.credentials_path}")
            self._client = self._call('authorize', self._authorize)
        spreadsheet = self._call('open spreadsheet', self._client.open_by_key, self.spreadsheet_id)
        self._worksheet = self._call('open worksheet', spreadsheet.get_worksheet, 0)
        return self._worksheet

    def _authorize(self):
        creds = Credentials.from_service_account_file(self.credentials_path, scopes=GOOGLE_SHEETS_SCOPES)
        return gspread.authorize(creds)

    def _insert_column(self, name: str):
        """Insert a grid column after the last header, write its header cell, drop the cache."""
        worksheet = self._open_worksheet()
        position = len(self._headers)
        body = {
            'requests': [{
                'insertDimension': {
                    'range': {
                        'sheetId': worksheet.id,
                        'dimension': 'COLUMNS',
                        'startIndex': position,
                        'endIndex': position + 1,
                    },
                    'inheritFromBefore': position > 0,
                },
            }],
        }
        self._call('insert column', worksheet.spreadsheet.batch_update, body)
        self._call('write header', worksheet.update_cell, HEADER_ROW, position + 1, name)
        self._invalidate()
        logger.info("Added column: %s", name)

    def _call(self, action, func, *args, **kwargs):
        try:
            return get_breaker('google_sheets').call(func, *args, **kwargs)
        except _API_ERRORS as e:
            raise StorageUnavailable(f"Google Sheets {action} failed: {e}") from e
