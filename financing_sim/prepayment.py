"""Recalculation of a simulation after an extra principal payment.

A prepayment lands on the first installment due on or after its effective
date. The balance entering that installment drops by the prepaid amount (an
instantaneous reduction at the installment boundary, no day-count model) and
the tail of the schedule is recomputed from there according to the chosen
strategy:

* ``"installment"`` keeps the last due date and re-amortizes the new balance
  over the installments left, so every later installment gets smaller.
* ``"term"`` keeps each installment's previous amortization and stops the
  schedule as soon as the balance is retired, so the loan ends earlier.

Functions here never mutate the simulation they receive.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .data_models import (
    PRICE,
    REDUCE_TERM,
    STATUS_APPLIED,
    STATUS_NO_EFFECT,
    STATUS_OVER_PAYMENT,
    STRATEGIES,
    Installment,
    PrepaymentEvent,
    PrepaymentResult,
    Simulation,
)
from .engine import BALANCE_TOLERANCE, ZERO, aggregate_totals, calculate_price_payment
from .exceptions import InvalidInputError, InvalidPrepaymentError
from .logging import get_logger
from .utils import to_decimal

logger = get_logger(__name__)


def normalize_strategy(strategy: str) -> str:
    normalized = (strategy or "").strip().lower()
    if normalized not in STRATEGIES:
        raise InvalidInputError(
            f"Prepayment strategy must be 'term' or 'installment'; got {strategy}"
        )
    return normalized


def _find_target(schedule: List[Installment], event: PrepaymentEvent) -> Optional[int]:
    for index, entry in enumerate(schedule):
        if entry.due_date >= event.effective_date:
            return index
    return None


def _reduce_installment(tail: List[Installment], balance: Decimal, rate: Decimal, method: str) -> None:
    remaining = len(tail)
    if method == PRICE:
        constant_payment = calculate_price_payment(balance, rate, remaining)
    for position, entry in enumerate(tail):
        interest = balance * rate
        if method == PRICE:
            amortization = constant_payment - interest
        else:
            amortization = balance / Decimal(remaining - position)
        balance -= amortization
        entry.interest = interest
        entry.amortization = amortization
        entry.payment = amortization + interest
        entry.balance = balance

    # fold rounding noise into the last installment
    last = tail[-1]
    if last.balance != 0:
        last.amortization += last.balance
        last.payment = last.amortization + last.interest
        last.balance = ZERO


def _reduce_term(tail: List[Installment], balance: Decimal, rate: Decimal) -> List[Installment]:
    kept: List[Installment] = []
    for entry in tail:
        if balance <= 0:
            break
        interest = balance * rate
        amortization = min(entry.amortization, balance)
        if balance - amortization <= BALANCE_TOLERANCE or entry is tail[-1]:
            amortization = balance
        balance -= amortization
        entry.interest = interest
        entry.amortization = amortization
        entry.payment = amortization + interest
        entry.balance = balance
        kept.append(entry)
    return kept


def apply_prepayment(simulation: Simulation, event: PrepaymentEvent) -> PrepaymentResult:
    """Apply one prepayment event and return the recalculated simulation.

    Raises
    ------
    InvalidPrepaymentError
        If the amount is zero or negative.
    InvalidInputError
        If the strategy is unknown.
    """
    amount = to_decimal(event.amount)
    if amount <= 0:
        raise InvalidPrepaymentError(f"Prepayment amount must be positive; got {amount}")
    strategy = normalize_strategy(event.strategy)
    event = PrepaymentEvent(effective_date=event.effective_date, amount=amount, strategy=strategy)

    index = _find_target(simulation.schedule, event)
    if index is None:
        logger.info(
            "Prepayment on %s falls after the last installment; nothing to apply",
            event.effective_date,
        )
        return PrepaymentResult(simulation=simulation, status=STATUS_NO_EFFECT)

    schedule = [replace(entry) for entry in simulation.schedule]
    target = schedule[index]
    opening = target.opening_balance
    applied = min(amount, opening)
    excess = amount - applied
    balance = opening - applied
    status = STATUS_OVER_PAYMENT if excess > 0 else STATUS_APPLIED
    if excess > 0:
        logger.info(
            "Prepayment of %s exceeds outstanding balance %s at installment %d; excess %s",
            amount, opening, target.number, excess,
        )

    head, tail = schedule[:index], schedule[index:]
    if strategy == REDUCE_TERM:
        tail = _reduce_term(tail, balance, simulation.monthly_rate)
    else:
        _reduce_installment(tail, balance, simulation.monthly_rate, simulation.method)
    new_schedule = head + tail

    logger.debug(
        "Applied %s prepayment of %s at installment %d (%d -> %d installments)",
        strategy, applied, target.number, len(schedule), len(new_schedule),
    )
    updated = replace(
        simulation,
        schedule=new_schedule,
        term_months=len(new_schedule),
        totals=aggregate_totals(new_schedule),
        prepayments=list(simulation.prepayments) + [event],
    )
    return PrepaymentResult(
        simulation=updated,
        status=status,
        installment_number=target.number,
        applied_amount=applied,
        excess=excess,
    )


def apply_prepayments(
    simulation: Simulation, events: Iterable[PrepaymentEvent]
) -> Tuple[Simulation, List[PrepaymentResult]]:
    """Apply several events one after the other, in the order given.

    Each event sees the schedule produced by the previous one, so callers
    should pass events sorted by effective date.
    """
    results: List[PrepaymentResult] = []
    previous_date = None
    for event in events:
        if previous_date is not None and event.effective_date < previous_date:
            logger.warning(
                "Prepayment on %s applied after one on %s; events are not in date order",
                event.effective_date, previous_date,
            )
        previous_date = event.effective_date
        result = apply_prepayment(simulation, event)
        results.append(result)
        simulation = result.simulation
    return simulation, results
