"""
Column policy — which contacts get which email next.

Pure functions over a single row. Slot columns are '$EMAIL_<n>'; they are
ordered by n, never by the mapping's key order, and the first empty slot is
the next send. A row with every slot filled is simply done.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from campaign_bot.config import (
    COL_IN_TALKS, COL_PAUSE, SLOT_PREFIX, TEMPLATE_PREFIX,
)
from campaign_bot.models.contact import is_blank, is_truthy, lookup

logger = logging.getLogger('pipeline.policy')

DEFAULT_TEMPLATE = f'{TEMPLATE_PREFIX}1'

_SLOT_RE = re.compile(rf'^{re.escape(SLOT_PREFIX)}(\d+)$', re.IGNORECASE)


def is_eligible(row: Dict[str, Any]) -> bool:
    """False when the contact is paused or already in talks."""
    if is_truthy(lookup(row, COL_PAUSE)):
        return False
    if is_truthy(lookup(row, COL_IN_TALKS)):
        return False
    return True


def slot_columns(row: Dict[str, Any]) -> List[Tuple[int, str]]:
    """(index, column) for every slot column, sorted by index."""
    slots = []
    for column in row:
        match = _SLOT_RE.match(column.strip())
        if match:
            slots.append((int(match.group(1)), column))
    return sorted(slots)


def next_slot(row: Dict[str, Any]) -> Optional[str]:
    """Column name of the first empty slot, or None when every slot has been used."""
    for _, column in slot_columns(row):
        if is_blank(row.get(column)):
            return column
    return None


def template_for(slot_column: str) -> str:
    """'$EMAIL_3' → 'email_3'; anything unparseable falls back to email_1."""
    match = _SLOT_RE.match((slot_column or '').strip())
    if not match:
        logger.warning("Cannot derive template from column %r, using %s", slot_column, DEFAULT_TEMPLATE)
        return DEFAULT_TEMPLATE
    return f'{TEMPLATE_PREFIX}{int(match.group(1))}'
