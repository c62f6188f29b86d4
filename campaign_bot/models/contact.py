"""
Contact row — one record of the outreach table.

A ContactRow is a plain column → value mapping that also carries its ordinal
row identifier (1-based, header excluded). The identifier is only meaningful
for the load that produced it; it is never written back to storage.
"""
from typing import Any, Dict, Iterable, Optional


class ContactRow(dict):
    """Column → value mapping plus the row's ordinal identifier."""

    def __init__(self, row_id: int, values: Optional[Dict[str, Any]] = None):
        super().__init__(values or {})
        self.row_id = row_id

    def text(self, column: str, default: str = '') -> str:
        """Return a column as a stripped string ('' for missing / None)."""
        value = lookup(self, column)
        if value is None:
            return default
        return str(value).strip()

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict copy, safe to serialize into a job payload."""
        return dict(self)

    def __repr__(self):
        return f'ContactRow(row_id={self.row_id}, {dict.__repr__(self)})'


def _normalize(column: str) -> str:
    return column.strip().lstrip('$').lower()


def lookup(row: Dict[str, Any], column: str, default: Any = None) -> Any:
    """
    Find a column value by exact name, falling back to a case-insensitive
    match that ignores a leading '$' (so 'PAUSE' and '$IN_TALKS' resolve).
    """
    if column in row:
        return row[column]
    wanted = _normalize(column)
    for key, value in row.items():
        if _normalize(key) == wanted:
            return value
    return default


def resolve_column(headers: Iterable[str], column: str) -> str:
    """The existing header that lookup() would read for `column`, else `column` itself."""
    headers = list(headers)
    if column in headers:
        return column
    wanted = _normalize(column)
    return next((h for h in headers if _normalize(h) == wanted), column)


def is_truthy(value: Any) -> bool:
    """Boolean-like cell: True, or the string 'true' in any casing."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return False


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def is_blank_row(values: Iterable[Any]) -> bool:
    return all(is_blank(v) for v in values)


def format_cell(value: Any) -> str:
    """Render a value the way it is persisted in a table cell."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    return str(value)
