"""Output helpers for the financing simulator.

This module provides simple functions to render simulations, their
installment tables and the saved-simulation history in a tabular text format
using built-in printing and string formatting.
"""

from __future__ import annotations

from typing import Iterable, List

from .data_models import Installment, PrepaymentResult, Simulation
from .engine import aggregate_totals
from .rates import fraction_to_percent, monthly_to_annual
from .utils import format_date


def print_summary(simulation: Simulation) -> None:
    """Print the headline figures of a simulation."""
    print("Summary")
    print("-" * 72)
    print(f"System             : {simulation.method}")
    if simulation.bank:
        print(f"Bank               : {simulation.bank}")
    print(f"Financing amount   : {simulation.financing_amount:.2f}")
    print(f"Down payment       : {simulation.down_payment:.2f}")
    print(f"Principal financed : {simulation.principal:.2f}")
    print(f"Term               : {simulation.term_months} months")
    print(f"Monthly rate       : {fraction_to_percent(simulation.monthly_rate):.4f}%")
    print(f"Annual rate        : {fraction_to_percent(monthly_to_annual(simulation.monthly_rate)):.4f}%")
    print(f"Total paid         : {simulation.totals.total_payment:.2f}")
    print(f"Total amortized    : {simulation.totals.total_amortization:.2f}")
    print(f"Total interest     : {simulation.totals.total_interest:.2f}")
    print(f"First installment  : {simulation.first_payment:.2f}")
    print(f"Last installment   : {simulation.last_payment:.2f}")
    if simulation.last_due_date:
        print(f"Last due date      : {format_date(simulation.last_due_date)}")
    if simulation.prepayments:
        print(f"Total prepaid      : {simulation.total_prepaid:.2f}")
    print("-" * 72)


def print_schedule(schedule: Iterable[Installment]) -> None:
    """Print the installment table followed by its totals row."""
    headers = ["No", "Date", "Payment", "Amortization", "Interest", "Balance"]
    print("\t".join(headers))
    rows: List[Installment] = list(schedule)
    for entry in rows:
        row = [
            str(entry.number),
            format_date(entry.due_date),
            f"{entry.payment:.2f}",
            f"{entry.amortization:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.balance:.2f}",
        ]
        print("\t".join(row))
    totals = aggregate_totals(rows)
    print(
        "\t".join(
            [
                "Totals",
                "",
                f"{totals.total_payment:.2f}",
                f"{totals.total_amortization:.2f}",
                f"{totals.total_interest:.2f}",
                "-",
            ]
        )
    )


def print_prepayment_result(result: PrepaymentResult) -> None:
    if result.no_effect:
        print("Prepayment falls after the last installment; schedule unchanged.")
        return
    print(
        f"Prepayment of {result.applied_amount:.2f} applied at installment "
        f"{result.installment_number}."
    )
    if result.over_payment:
        print(f"Amount exceeded the outstanding balance; {result.excess:.2f} was not applied.")


def print_history(simulations: Iterable[Simulation]) -> None:
    """Print one line per saved simulation."""
    headers = ["Id", "Saved", "System", "Bank", "Financed", "Down", "Term", "Rate", "Total"]
    print("\t".join(headers))
    for sim in simulations:
        row = [
            sim.id,
            format_date(sim.created_on) if sim.created_on else "-",
            sim.method,
            sim.bank or "-",
            f"{sim.financing_amount:.2f}",
            f"{sim.down_payment:.2f}",
            f"{sim.term_months}",
            f"{fraction_to_percent(sim.monthly_rate):.2f}%",
            f"{sim.totals.total_payment:.2f}",
        ]
        print("\t".join(row))
