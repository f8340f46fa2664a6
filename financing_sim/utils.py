"""Utility functions for the financing simulator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months and reading the date formats used
by the stored simulation records (``dd/mm/yyyy``) as well as ISO dates.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext

from .exceptions import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
_DATE_FORMATS = ("%Y-%m-%d", DISPLAY_DATE_FORMAT)


def parse_date(value: str) -> date:
    """Parse a date string into a ``date`` object.

    Accepts ISO dates (``"2024-01-31"``), the stored display format
    (``"31/01/2024"``) and bare year-months (``"2024-01"``), the latter
    normalized to the first day of the month.

    Raises
    ------
    InvalidInputError
        If the string matches none of the supported formats.
    """
    text = (value or "").strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    parts = text.split("-")
    if len(parts) == 2:
        try:
            return date(int(parts[0]), int(parts[1]), 1)
        except ValueError:
            pass
    raise InvalidInputError(f"Invalid date: {value}")


def format_date(dt: date) -> str:
    """Render a date in the stored display format (``dd/mm/yyyy``)."""
    return dt.strftime(DISPLAY_DATE_FORMAT)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any thousands commas and surrounding whitespace. It
    raises ``InvalidInputError`` if conversion fails or the value is not finite.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise InvalidInputError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise InvalidInputError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to ``Decimal`` without binary noise."""
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidInputError(f"Invalid numeric value: {value}")
        return value
    return decimal_from_str(str(value))
