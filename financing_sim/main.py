"""Command-line interface for the financing simulator.

This module uses the ``click`` library to implement a multi-command
interface. Users can simulate PRICE or SAC financing, convert interest rates,
apply prepayments, and browse the saved-simulation history. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .config import Settings
from .data_models import METHODS, STRATEGIES, PrepaymentEvent, Simulation
from .engine import build_simulation
from .exceptions import FinancingSimError
from .formatter import print_history, print_prepayment_result, print_schedule, print_summary
from .logging import setup_logging
from .prepayment import apply_prepayment, apply_prepayments
from .rates import annual_to_monthly, fraction_to_percent, monthly_to_annual, percent_to_fraction
from .serialization import simulation_to_dict
from .store import SimulationRepository, create_store_from_env
from .utils import decimal_from_str, format_date, parse_date


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> float:
    """Parse a percentage string such as "1.5" or "1.5%"."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return float(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def _parse_date_option(value: str) -> date:
    try:
        return parse_date(value)
    except FinancingSimError as exc:
        raise click.BadParameter(str(exc))


def parse_prepayment_strings(values: Tuple[str, ...]) -> List[PrepaymentEvent]:
    events: List[PrepaymentEvent] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 3:
            raise click.BadParameter(
                f"Prepayment must be in DATE:AMOUNT:TYPE format; got {item}"
            )
        raw_date, amt_str, typ = parts
        typ = typ.lower()
        if typ not in STRATEGIES:
            raise click.BadParameter(
                f"Prepayment type must be 'term' or 'installment'; got {typ}"
            )
        events.append(
            PrepaymentEvent(
                effective_date=_parse_date_option(raw_date),
                amount=decimal_from_str(str(parse_amount(amt_str))),
                strategy=typ,
            )
        )
    return sorted(events, key=lambda e: e.effective_date)


def resolve_monthly_rate(monthly_rate: Optional[str], annual_rate: Optional[str]):
    """Return the monthly rate fraction from either percent option."""
    if monthly_rate is not None and annual_rate is not None:
        raise click.UsageError("Use only one of --monthly-rate and --annual-rate")
    if monthly_rate is not None:
        return percent_to_fraction(decimal_from_str(str(parse_percent(monthly_rate))))
    if annual_rate is not None:
        return annual_to_monthly(percent_to_fraction(decimal_from_str(str(parse_percent(annual_rate)))))
    raise click.UsageError("One of --monthly-rate or --annual-rate is required")


def export_to_json(path: Path, simulation: Simulation) -> None:
    """Export a simulation record to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(simulation_to_dict(simulation), f, indent=2)


def export_to_csv(path: Path, simulation: Simulation) -> None:
    """Export the installment table to a CSV file."""
    header = ["Number", "Date", "Payment", "Amortization", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in simulation.schedule:
            writer.writerow(
                [
                    e.number,
                    format_date(e.due_date),
                    float(e.payment),
                    float(e.amortization),
                    float(e.interest),
                    float(e.balance),
                ]
            )


def _repository(ctx: click.Context) -> SimulationRepository:
    settings: Settings = ctx.obj["settings"]
    if "repository" not in ctx.obj:
        store = create_store_from_env(settings.database_url)
        ctx.obj["repository"] = SimulationRepository(store, settings.storage_key)
    return ctx.obj["repository"]


def _show(simulation: Simulation, show_installments: bool, max_rows: int) -> None:
    print_summary(simulation)
    if not show_installments:
        return
    if len(simulation.schedule) > max_rows:
        click.echo(
            f"Schedule has {len(simulation.schedule)} rows; showing first {max_rows} rows."
        )
        print_schedule(simulation.schedule[:max_rows])
    else:
        print_schedule(simulation.schedule)


@click.group()
@click.option("--database-url", "database_url", help="SQLAlchemy URL of the saved-simulation store")
@click.option("--log-level", "log_level", help="Logging level (DEBUG, INFO, WARNING...)")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str], log_level: Optional[str]) -> None:
    """Simulate PRICE and SAC financing, prepayments and saved history."""
    settings = Settings.from_env()
    if database_url:
        settings.database_url = database_url
    if log_level:
        settings.log_level = log_level
    setup_logging(settings.log_level, settings.log_format)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--method", "-m", "method", type=click.Choice(METHODS, case_sensitive=False), default="PRICE", help="Amortization system")
@click.option("--amount", "-a", "amount", required=True, help="Financing amount before the down payment")
@click.option("--down-payment", "-d", "down_payment", help="Down payment amount")
@click.option("--term", "-t", "term", required=True, type=int, help="Term in months")
@click.option("--monthly-rate", "-r", "monthly_rate", help="Monthly interest rate (percent)")
@click.option("--annual-rate", "annual_rate", help="Annual interest rate (percent)")
@click.option("--first-due-date", "-s", "first_due_date", required=True, help="First installment date (YYYY-MM-DD or DD/MM/YYYY)")
@click.option("--operation-date", "operation_date", help="Contract date")
@click.option("--bank", "bank", default="", help="Lender name")
@click.option("--prepayment", "prepayment", multiple=True, help="Prepayment in DATE:AMOUNT:TYPE format (TYPE is term or installment)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--save", "save", is_flag=True, help="Store the simulation in the history")
@click.option("--hide-installments", "hide_installments", is_flag=True, help="Print only the summary")
@click.pass_context
def simulate(
    ctx: click.Context,
    method: str,
    amount: str,
    down_payment: Optional[str],
    term: int,
    monthly_rate: Optional[str],
    annual_rate: Optional[str],
    first_due_date: str,
    operation_date: Optional[str],
    bank: str,
    prepayment: Tuple[str, ...],
    output: Optional[str],
    save: bool,
    hide_installments: bool,
) -> None:
    """Compute and print a financing simulation."""
    try:
        events = parse_prepayment_strings(prepayment) if prepayment else []
        rate = resolve_monthly_rate(monthly_rate, annual_rate)
        simulation = build_simulation(
            method,
            decimal_from_str(str(parse_amount(amount))),
            decimal_from_str(str(parse_amount(down_payment))) if down_payment else 0,
            term,
            rate,
            _parse_date_option(first_due_date),
            bank=bank,
            operation_date=_parse_date_option(operation_date) if operation_date else None,
        )
        simulation, results = apply_prepayments(simulation, events)
    except FinancingSimError as exc:
        raise click.ClickException(str(exc))
    for result in results:
        print_prepayment_result(result)

    if save:
        try:
            saved = _repository(ctx).add(simulation)
        except FinancingSimError as exc:
            raise click.ClickException(str(exc))
        click.echo(f"Simulation saved with id {saved.id}")

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, simulation)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, simulation)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Simulation exported to {path}")
    else:
        _show(simulation, not hide_installments, ctx.obj["settings"].preview_rows)


@cli.command()
@click.option("--monthly", "monthly", help="Monthly rate (percent) to convert to annual")
@click.option("--annual", "annual", help="Annual rate (percent) to convert to monthly")
def rate(monthly: Optional[str], annual: Optional[str]) -> None:
    """Convert between monthly and compounded annual rates."""
    if (monthly is None) == (annual is None):
        raise click.UsageError("Provide exactly one of --monthly or --annual")
    try:
        if monthly is not None:
            converted = monthly_to_annual(percent_to_fraction(parse_percent(monthly)))
            click.echo(f"Annual rate: {fraction_to_percent(converted):.6f}%")
        else:
            converted = annual_to_monthly(percent_to_fraction(parse_percent(annual)))
            click.echo(f"Monthly rate: {fraction_to_percent(converted):.6f}%")
    except FinancingSimError as exc:
        raise click.ClickException(str(exc))


@cli.command()
@click.option("--method", "method", type=click.Choice(("ALL",) + METHODS, case_sensitive=False), default="ALL", help="Show only one amortization system")
@click.pass_context
def history(ctx: click.Context, method: str) -> None:
    """List saved simulations."""
    simulations = _repository(ctx).list_simulations(method)
    if not simulations:
        click.echo("No saved simulations yet.")
        return
    print_history(simulations)


@cli.command()
@click.argument("simulation_id")
@click.option("--hide-installments", "hide_installments", is_flag=True, help="Print only the summary")
@click.pass_context
def show(ctx: click.Context, simulation_id: str, hide_installments: bool) -> None:
    """Show one saved simulation."""
    try:
        simulation = _repository(ctx).get(simulation_id)
    except FinancingSimError as exc:
        raise click.ClickException(str(exc))
    _show(simulation, not hide_installments, ctx.obj["settings"].preview_rows)


@cli.command()
@click.argument("simulation_id")
@click.pass_context
def delete(ctx: click.Context, simulation_id: str) -> None:
    """Delete a saved simulation."""
    if not _repository(ctx).remove(simulation_id):
        raise click.ClickException(f"Simulation {simulation_id} not found")
    click.echo(f"Simulation {simulation_id} deleted")


@cli.command()
@click.argument("simulation_id")
@click.option("--date", "effective_date", required=True, help="Prepayment date")
@click.option("--amount", "amount", required=True, help="Prepaid amount")
@click.option("--strategy", "strategy", type=click.Choice(STRATEGIES, case_sensitive=False), default="installment", help="Reduce the installment or the term")
@click.pass_context
def prepay(ctx: click.Context, simulation_id: str, effective_date: str, amount: str, strategy: str) -> None:
    """Apply a prepayment to a saved simulation and store the result."""
    repository = _repository(ctx)
    try:
        event = PrepaymentEvent(
            effective_date=_parse_date_option(effective_date),
            amount=decimal_from_str(str(parse_amount(amount))),
            strategy=strategy.lower(),
        )
        result = apply_prepayment(repository.get(simulation_id), event)
        if not result.no_effect and not repository.replace(result.simulation):
            raise click.ClickException("Could not save the updated simulation")
    except FinancingSimError as exc:
        raise click.ClickException(str(exc))
    print_prepayment_result(result)
    print_summary(result.simulation)


if __name__ == "__main__":
    cli()
