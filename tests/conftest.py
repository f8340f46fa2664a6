"""Pytest configuration and fixtures."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from financing_sim.config import Settings
from financing_sim.engine import build_simulation
from financing_sim.store import KeyValueStore, SimulationRepository


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by setup_logging during a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def first_due_date() -> date:
    return date(2024, 1, 15)


@pytest.fixture
def price_simulation(first_due_date):
    """PRICE, 10000 financed at 1 % a month over 12 months."""
    return build_simulation("PRICE", Decimal("10000"), Decimal("0"), 12, Decimal("0.01"), first_due_date)


@pytest.fixture
def sac_simulation(first_due_date):
    """SAC, 12000 financed at 1 % a month over 12 months."""
    return build_simulation("SAC", Decimal("12000"), Decimal("0"), 12, Decimal("0.01"), first_due_date)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'simulations.sqlite3'}"


@pytest.fixture
def kv_store(database_url):
    store = KeyValueStore(database_url)
    yield store
    store.dispose()


@pytest.fixture
def repository(kv_store) -> SimulationRepository:
    return SimulationRepository(kv_store, "simulations")


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(database_url=database_url, preview_rows=120)


@pytest.fixture
def legacy_record() -> dict:
    """A record as written by the browser application (pt-BR dates, percent rate)."""
    return {
        "id": "1709212345678",
        "type": "SAC",
        "date": "29/02/2024",
        "financingAmount": 3500,
        "downPayment": 500,
        "months": 3,
        "monthlyRate": 1,
        "bank": "Banco do Brasil",
        "firstPayment": 1030,
        "lastPayment": 1010,
        "totalAmount": 3060,
        "totalInterest": 60,
        "installments": [
            {"number": 1, "date": "10/04/2024", "payment": 1030, "amortization": 1000, "interest": 30, "balance": 2000},
            {"number": 2, "date": "10/05/2024", "payment": 1020, "amortization": 1000, "interest": 20, "balance": 1000},
            {"number": 3, "date": "10/06/2024", "payment": 1010, "amortization": 1000, "interest": 10, "balance": 0},
        ],
    }
