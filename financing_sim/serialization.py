"""Conversion between ``Simulation`` objects and their stored JSON shape.

Saved simulations live as one JSON array under a single key. Each record
keeps the field names used by the browser application so both can
read the same collection:

    {"id", "type", "date", "financingAmount", "downPayment", "months",
     "monthlyRate", "bank", "firstPayment", "lastPayment", "totalAmount",
     "totalInterest", "installments": [{"number", "date", "payment",
     "amortization", "interest", "balance"}]}

``monthlyRate`` is stored as a percentage and dates as ``dd/mm/yyyy``.
Records written here add ``totalAmortization``, ``firstPaymentDate``,
``operationDate`` and ``prepayments``; all of them are optional on read.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Optional

from .data_models import Installment, PrepaymentEvent, Simulation, Totals
from .engine import aggregate_totals, normalize_method
from .exceptions import FinancingSimError, StorageError
from .rates import fraction_to_percent, percent_to_fraction
from .utils import format_date, parse_date, to_decimal


def _optional_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return parse_date(value)


def installment_to_dict(entry: Installment) -> Dict[str, Any]:
    return {
        "number": entry.number,
        "date": format_date(entry.due_date),
        "payment": float(entry.payment),
        "amortization": float(entry.amortization),
        "interest": float(entry.interest),
        "balance": float(entry.balance),
    }


def simulation_to_dict(simulation: Simulation) -> Dict[str, Any]:
    """Convert a simulation into its JSON-serialisable record."""
    return {
        "id": simulation.id,
        "type": simulation.method,
        "date": format_date(simulation.created_on or date.today()),
        "financingAmount": float(simulation.financing_amount),
        "downPayment": float(simulation.down_payment),
        "months": simulation.term_months,
        "monthlyRate": float(fraction_to_percent(simulation.monthly_rate)),
        "bank": simulation.bank,
        "firstPayment": float(simulation.first_payment),
        "lastPayment": float(simulation.last_payment),
        "totalAmount": float(simulation.totals.total_payment),
        "totalAmortization": float(simulation.totals.total_amortization),
        "totalInterest": float(simulation.totals.total_interest),
        "firstPaymentDate": format_date(simulation.first_due_date),
        "operationDate": format_date(simulation.operation_date) if simulation.operation_date else None,
        "prepayments": [
            {
                "date": format_date(p.effective_date),
                "amount": float(p.amount),
                "strategy": p.strategy,
            }
            for p in simulation.prepayments
        ],
        "installments": [installment_to_dict(e) for e in simulation.schedule],
    }


def simulation_from_dict(record: Dict[str, Any]) -> Simulation:
    """Rebuild a simulation from a stored record.

    Raises
    ------
    StorageError
        If a required field is missing or malformed.
    """
    try:
        schedule = [
            Installment(
                number=int(item["number"]),
                due_date=parse_date(item["date"]),
                payment=to_decimal(item["payment"]),
                amortization=to_decimal(item["amortization"]),
                interest=to_decimal(item["interest"]),
                balance=to_decimal(item["balance"]),
            )
            for item in record.get("installments") or []
        ]
        down_payment = to_decimal(record.get("downPayment") or 0)
        principal = to_decimal(record["financingAmount"]) - down_payment
        created_on = _optional_date(record.get("date"))
        first_due_date = _optional_date(record.get("firstPaymentDate"))
        if first_due_date is None:
            first_due_date = schedule[0].due_date if schedule else created_on or date.today()
        if schedule:
            totals = aggregate_totals(schedule)
        else:
            total_payment = to_decimal(record.get("totalAmount") or 0)
            total_interest = to_decimal(record.get("totalInterest") or 0)
            totals = Totals(
                total_payment=total_payment,
                total_amortization=to_decimal(
                    record.get("totalAmortization", total_payment - total_interest)
                ),
                total_interest=total_interest,
            )
        prepayments = [
            PrepaymentEvent(
                effective_date=parse_date(p["date"]),
                amount=to_decimal(p["amount"]),
                strategy=p.get("strategy", "installment"),
            )
            for p in record.get("prepayments") or []
        ]
        return Simulation(
            method=normalize_method(record["type"]),
            principal=principal,
            down_payment=down_payment,
            term_months=len(schedule) if schedule else int(record["months"]),
            monthly_rate=percent_to_fraction(record["monthlyRate"]),
            first_due_date=first_due_date,
            schedule=schedule,
            totals=totals,
            id=str(record.get("id", "")),
            bank=record.get("bank") or "",
            created_on=created_on,
            operation_date=_optional_date(record.get("operationDate")),
            prepayments=prepayments,
        )
    except (KeyError, TypeError, ValueError, FinancingSimError) as exc:
        raise StorageError(f"Malformed simulation record: {exc}") from exc


def dumps_simulations(simulations: List[Simulation]) -> str:
    return json.dumps([simulation_to_dict(s) for s in simulations])


def loads_simulations(payload: Optional[str]) -> List[Simulation]:
    """Decode the stored JSON array; an empty or missing payload is no records."""
    if not payload:
        return []
    try:
        records = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Stored simulations are not valid JSON: {exc}") from exc
    if not isinstance(records, list):
        raise StorageError("Stored simulations must be a JSON array")
    return [simulation_from_dict(r) for r in records]
