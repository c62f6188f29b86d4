"""
Row store contract.

Every backend implements RowStore and behaves identically from the caller's
side. Backend-specific types (gspread worksheets, file handles) never leave
the concrete class; the pipeline only sees ContactRow objects.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from campaign_bot.models.contact import ContactRow, resolve_column

logger = logging.getLogger('stores.base')


class RowStore(ABC):
    """
    Durable CRUD over the contact table.

    Row identifiers are ordinal (1..N in storage order, blank rows skipped)
    and only stable for the lifetime of one load.
    """

    @abstractmethod
    def list(self) -> List[ContactRow]:
        """All non-blank rows in storage order, numbered from 1."""

    @abstractmethod
    def get(self, row_id: int) -> Optional[ContactRow]:
        """The row with this identifier, or None."""

    @abstractmethod
    def update(self, row_id: int, fields: Dict[str, Any]) -> None:
        """
        Merge fields into the row. Raises RowNotFound for an unknown id.
        Unknown column names are created before the write.
        """

    @abstractmethod
    def add_column(self, name: str) -> None:
        """Append a column. No-op (with a warning) if it already exists."""

    def close(self) -> None:
        """Release cached state. Safe to call more than once."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def get_row_store(provider: str = None) -> RowStore:
    """Build the configured backend ('csv' or 'sheets')."""
    from campaign_bot import config

    provider = (provider or config.DATA_PROVIDER or 'csv').lower()
    if provider == 'sheets':
        from campaign_bot.stores.sheets_store import GoogleSheetsRowStore
        return GoogleSheetsRowStore(config.GOOGLE_SHEETS_ID, config.GOOGLE_SERVICE_ACCOUNT_PATH)
    if provider == 'csv':
        from campaign_bot.stores.csv_store import CsvRowStore
        return CsvRowStore(config.CSV_PATH)
    raise ValueError(f"Unknown DATA_PROVIDER '{provider}'. Available: csv, sheets")


def resolve_fields(headers, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Rename field keys onto matching existing headers, the way ContactRow reads resolve them."""
    resolved = {}
    for column, value in fields.items():
        header = resolve_column(headers, column)
        if header != column:
            logger.debug("Writing %s into existing column %s", column, header)
        resolved[header] = value
    return resolved
