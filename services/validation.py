"""
services/validation.py
----------------------
Input checks run before any ledger write. Each raises ValidationError.
"""

import math
from datetime import date
from decimal import Decimal, InvalidOperation

from config import CASH_INFLOW_SOURCES
from errors import ValidationError
from utils.dates import parse_date


def require_amount(value, field: str = "amount") -> float:
    """
    Parse a non-negative amount.

    Accepts ints, floats, Decimals and numeric strings ("1000", "12.5").
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required", field)
    if isinstance(value, str):
        try:
            value = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number, got {value!r}", field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field)
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number", field)
    if number < 0:
        raise ValidationError(f"{field} must not be negative", field)
    return number


def require_text(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field)
    return str(value).strip()


def require_source(value) -> str:
    source = require_text(value, "source")
    if source not in CASH_INFLOW_SOURCES:
        raise ValidationError(
            f"Unknown source {source!r}; expected one of {sorted(CASH_INFLOW_SOURCES)}",
            "source",
        )
    return source


def require_date(value, field: str = "date") -> date:
    """A calendar date; None means today."""
    if value is None:
        return date.today()
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD), got {value!r}", field)
    return parsed
