"""
utils/dates.py
--------------
Date helpers shared by the repositories and the balance calculator.
Stored dates are ISO strings (``YYYY-MM-DD``); anything else reads as None.
"""

from datetime import date, datetime
from typing import Optional


def parse_date(value) -> Optional[date]:
    """
    Read a stored date leniently.

    Args:
        value: A ``date``, ``datetime`` or ISO string (a time part is ignored).

    Returns:
        The calendar date, or None when the value is missing or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def to_iso(value: Optional[date]) -> Optional[str]:
    """Serialize a date for storage."""
    return value.isoformat() if value else None


def now_iso() -> str:
    """Current timestamp as stored in ``createdAt``/``updatedAt`` fields."""
    return datetime.now().isoformat(timespec="seconds")
