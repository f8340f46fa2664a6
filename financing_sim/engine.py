"""Core calculation engine for the financing simulator.

This module implements the financial logic required to build amortization
schedules under the PRICE (constant installment) and SAC (constant
amortization) systems, and to sum the schedule columns into the totals shown
next to every simulation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
from typing import Iterable, List, Optional

from .data_models import METHODS, PRICE, Installment, Simulation, Totals
from .exceptions import InvalidInputError, InvalidRateError
from .logging import get_logger
from .utils import add_months, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = get_logger(__name__)

BALANCE_TOLERANCE = Decimal("1e-6")
ZERO = Decimal("0")


def calculate_price_payment(principal: Decimal, monthly_rate: Decimal, term: int) -> Decimal:
    """Return the constant PRICE installment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidInputError("Term must be positive")
    if monthly_rate == 0:
        return principal / Decimal(term)
    factor = (1 + monthly_rate) ** term
    return principal * (monthly_rate * factor) / (factor - 1)


def normalize_method(method: str) -> str:
    normalized = (method or "").strip().upper()
    if normalized not in METHODS:
        raise InvalidInputError(f"Method must be one of {', '.join(METHODS)}; got {method}")
    return normalized


def _validate_inputs(principal: Decimal, term_months: int, monthly_rate: Decimal) -> None:
    if principal <= 0:
        raise InvalidInputError("Financed principal must be positive")
    if isinstance(term_months, bool) or not isinstance(term_months, int) or term_months <= 0:
        raise InvalidInputError(f"Term must be a positive whole number of months; got {term_months}")
    if monthly_rate <= -1:
        raise InvalidRateError(f"Monthly rate must be greater than -100%; got {monthly_rate}")


def generate_schedule(
    method: str,
    principal,
    term_months: int,
    monthly_rate,
    first_due_date: date,
) -> List[Installment]:
    """Build the installment sequence for a loan.

    Parameters
    ----------
    method: str
        ``"PRICE"`` for a constant installment or ``"SAC"`` for a constant
        amortization.
    principal:
        Financed amount (after any down payment). Must be positive.
    term_months: int
        Number of monthly installments.
    monthly_rate:
        Monthly interest as a fraction. Must be greater than -1.
    first_due_date: date
        Due date of installment 1; later installments follow month by month.

    Returns
    -------
    List[Installment]
        ``term_months`` installments whose final balance is exactly zero.
    """
    method = normalize_method(method)
    principal = to_decimal(principal)
    rate = to_decimal(monthly_rate)
    _validate_inputs(principal, term_months, rate)

    if method == PRICE:
        constant_payment = calculate_price_payment(principal, rate, term_months)
    else:
        constant_amortization = principal / Decimal(term_months)

    schedule: List[Installment] = []
    balance = principal
    for i in range(term_months):
        interest = balance * rate
        if method == PRICE:
            payment = constant_payment
            amortization = payment - interest
        else:
            amortization = constant_amortization
            payment = amortization + interest
        balance -= amortization
        schedule.append(
            Installment(
                number=i + 1,
                due_date=add_months(first_due_date, i),
                payment=payment,
                amortization=amortization,
                interest=interest,
                balance=balance,
            )
        )

    _absorb_residual(schedule)
    logger.debug(
        "Generated %s schedule: principal=%s term=%d rate=%s",
        method, principal, term_months, rate,
    )
    return schedule


def _absorb_residual(schedule: List[Installment]) -> None:
    """Fold any leftover balance into the last installment's amortization."""
    if not schedule:
        return
    last = schedule[-1]
    residual = last.balance
    if residual == 0:
        return
    if residual.copy_abs() > BALANCE_TOLERANCE:
        logger.warning("Schedule closed with residual balance %s; absorbing into last installment", residual)
    last.amortization += residual
    last.payment = last.amortization + last.interest
    last.balance = ZERO


def aggregate_totals(schedule: Iterable[Installment]) -> Totals:
    """Sum the payment, amortization and interest columns of a schedule."""
    totals = Totals()
    for entry in schedule:
        totals.total_payment += entry.payment
        totals.total_amortization += entry.amortization
        totals.total_interest += entry.interest
    return totals


def build_simulation(
    method: str,
    financing_amount,
    down_payment,
    term_months: int,
    monthly_rate,
    first_due_date: date,
    *,
    bank: str = "",
    created_on: Optional[date] = None,
    operation_date: Optional[date] = None,
    simulation_id: str = "",
) -> Simulation:
    """Compute a complete simulation record.

    ``financing_amount`` is the requested amount *before* the down payment;
    the down payment reduces the financed principal.
    """
    down = to_decimal(down_payment or 0)
    if down < 0:
        raise InvalidInputError("Down payment cannot be negative")
    principal = to_decimal(financing_amount) - down
    if principal <= 0:
        raise InvalidInputError("Financed principal must be positive after down payment")
    method = normalize_method(method)
    rate = to_decimal(monthly_rate)
    schedule = generate_schedule(method, principal, term_months, rate, first_due_date)
    return Simulation(
        method=method,
        principal=principal,
        down_payment=down,
        term_months=term_months,
        monthly_rate=rate,
        first_due_date=first_due_date,
        schedule=schedule,
        totals=aggregate_totals(schedule),
        id=simulation_id,
        bank=bank,
        created_on=created_on,
        operation_date=operation_date,
    )
