"""Conversion between monthly and compounded annual interest rates.

Rates are fractions of compounding per period (``0.01`` means 1 % a month).
The effective annual rate of a monthly rate ``i`` is ``(1 + i)^12 - 1`` and the
monthly equivalent of an annual rate ``a`` is ``(1 + a)^(1/12) - 1``.

Both conversions run at ``CONVERSION_PRECISION`` digits. Annual rates keep
that precision: near -100 % a month, ``(1 + i)^12`` is far below the 28-digit
resolution and would otherwise round the annual rate to exactly -1.
"""

from __future__ import annotations

from decimal import Decimal, getcontext, localcontext

from .exceptions import InvalidRateError
from .utils import to_decimal

getcontext().prec = 28

ONE = Decimal("1")
HUNDRED = Decimal("100")
PERIODS_PER_YEAR = 12
CONVERSION_PRECISION = 80


def _check_rate(rate: Decimal, label: str) -> None:
    if rate <= -ONE:
        raise InvalidRateError(f"{label} rate must be greater than -100%; got {rate}")


def monthly_to_annual(rate) -> Decimal:
    """Return the compounded annual rate equivalent to a monthly rate."""
    monthly = to_decimal(rate)
    _check_rate(monthly, "Monthly")
    with localcontext() as ctx:
        ctx.prec = CONVERSION_PRECISION
        return (ONE + monthly) ** PERIODS_PER_YEAR - ONE


def annual_to_monthly(rate) -> Decimal:
    """Return the monthly rate that compounds to the given annual rate."""
    annual = to_decimal(rate)
    _check_rate(annual, "Annual")
    with localcontext() as ctx:
        ctx.prec = CONVERSION_PRECISION
        monthly = (ONE + annual) ** (ONE / Decimal(PERIODS_PER_YEAR)) - ONE
    return +monthly


def percent_to_fraction(value) -> Decimal:
    """Convert a percentage (``1.5``) into a fraction (``0.015``)."""
    return to_decimal(value) / HUNDRED


def fraction_to_percent(value) -> Decimal:
    return to_decimal(value) * HUNDRED
