"""Data models for the financing simulator.

This module defines dataclasses representing the entities used by the
simulator: individual installments, column totals, prepayment events, the
simulation record itself and the outcome of applying a prepayment. Monetary
amounts and rates are ``Decimal`` values; conversion to floats only happens
when records are serialized.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

PRICE = "PRICE"
SAC = "SAC"
METHODS = (PRICE, SAC)

REDUCE_INSTALLMENT = "installment"
REDUCE_TERM = "term"
STRATEGIES = (REDUCE_INSTALLMENT, REDUCE_TERM)

STATUS_APPLIED = "applied"
STATUS_OVER_PAYMENT = "over_payment"
STATUS_NO_EFFECT = "no_effect"


@dataclass
class Installment:
    """One scheduled payment period.

    Attributes
    ----------
    number: int
        1-based position in the schedule.
    due_date: date
        Date the installment falls due. Consecutive installments are one
        calendar month apart.
    payment: Decimal
        Total amount paid, always ``amortization + interest``.
    amortization: Decimal
        Portion of the payment that reduces the principal.
    interest: Decimal
        Interest charged on the balance outstanding before this installment.
    balance: Decimal
        Outstanding principal right after this installment is paid.
    """

    number: int
    due_date: date
    payment: Decimal
    amortization: Decimal
    interest: Decimal
    balance: Decimal

    @property
    def opening_balance(self) -> Decimal:
        return self.balance + self.amortization


@dataclass
class Totals:
    """Column sums over a schedule."""

    total_payment: Decimal = Decimal("0")
    total_amortization: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")


@dataclass
class PrepaymentEvent:
    """An extra payment applied to the principal.

    Attributes
    ----------
    effective_date: date
        The event lands on the first installment due on or after this date.
    amount: Decimal
        The amount of additional money applied to the principal.
    strategy: str
        ``"installment"`` keeps the term and lowers future installments.
        ``"term"`` keeps the amortization pace and finishes the loan earlier.
    """

    effective_date: date
    amount: Decimal
    strategy: str = REDUCE_INSTALLMENT


@dataclass
class Simulation:
    """One computed amortization record.

    ``principal`` is the financed amount, i.e. the requested amount minus the
    down payment. ``monthly_rate`` is a fraction (``Decimal("0.01")`` is 1 %).
    The schedule always holds ``term_months`` installments.
    """

    method: str
    principal: Decimal
    down_payment: Decimal
    term_months: int
    monthly_rate: Decimal
    first_due_date: date
    schedule: List[Installment]
    totals: Totals
    id: str = ""
    bank: str = ""
    created_on: Optional[date] = None
    operation_date: Optional[date] = None
    prepayments: List[PrepaymentEvent] = field(default_factory=list)

    @property
    def financing_amount(self) -> Decimal:
        return self.principal + self.down_payment

    @property
    def first_payment(self) -> Decimal:
        return self.schedule[0].payment if self.schedule else Decimal("0")

    @property
    def last_payment(self) -> Decimal:
        return self.schedule[-1].payment if self.schedule else Decimal("0")

    @property
    def last_due_date(self) -> Optional[date]:
        return self.schedule[-1].due_date if self.schedule else None

    @property
    def total_prepaid(self) -> Decimal:
        return sum((p.amount for p in self.prepayments), Decimal("0"))


@dataclass
class PrepaymentResult:
    """Outcome of applying one prepayment event.

    ``status`` is one of ``"applied"``, ``"over_payment"`` (the amount
    exceeded the outstanding balance; ``excess`` holds the remainder) or
    ``"no_effect"`` (the event falls after the last installment and
    ``simulation`` is the input unchanged).
    """

    simulation: Simulation
    status: str
    installment_number: Optional[int] = None
    applied_amount: Decimal = Decimal("0")
    excess: Decimal = Decimal("0")

    @property
    def no_effect(self) -> bool:
        return self.status == STATUS_NO_EFFECT

    @property
    def over_payment(self) -> bool:
        return self.status == STATUS_OVER_PAYMENT
