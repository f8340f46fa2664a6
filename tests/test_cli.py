"""Tests for the click command-line interface."""

import csv
import json

import click
import pytest
from click.testing import CliRunner
from sqlalchemy.exc import OperationalError

from financing_sim.main import cli, parse_amount, parse_prepayment_strings
from financing_sim.store import KeyValueStore


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def invoke(runner, database_url):
    def _invoke(*args):
        return runner.invoke(cli, ["--database-url", database_url, "--log-level", "WARNING", *args])

    return _invoke


SAC_ARGS = ("simulate", "-m", "SAC", "-a", "12000", "-t", "12", "-r", "1", "-s", "2024-01-15")


class TestParsers:
    def test_parse_amount_suffixes(self):
        assert parse_amount("500k") == 500_000.0
        assert parse_amount("1.2m") == 1_200_000.0
        assert parse_amount("1,000") == 1000.0

    def test_parse_prepayment_strings_sorts_by_date(self):
        events = parse_prepayment_strings(("2024-06-01:1k:term", "2024-03-01:500:installment"))
        assert [e.strategy for e in events] == ["installment", "term"]
        assert events[1].amount == 1000

    def test_parse_prepayment_strings_rejects_bad_type(self):
        with pytest.raises(click.BadParameter):
            parse_prepayment_strings(("2024-06-01:1000:skip",))


class TestSimulate:
    def test_prints_summary_and_schedule(self, invoke):
        result = invoke(*SAC_ARGS)
        assert result.exit_code == 0, result.output
        assert "Summary" in result.output
        assert "12780.00" in result.output
        assert "15/12/2024" in result.output

    def test_annual_rate_option(self, invoke):
        result = invoke("simulate", "-a", "10000", "-t", "12", "--annual-rate", "12.682503013197", "-s", "2024-01-15")
        assert result.exit_code == 0, result.output
        assert "888.49" in result.output

    def test_requires_a_rate(self, invoke):
        result = invoke("simulate", "-a", "10000", "-t", "12", "-s", "2024-01-15")
        assert result.exit_code != 0

    def test_invalid_term_is_reported(self, invoke):
        result = invoke("simulate", "-a", "10000", "-t", "0", "-r", "1", "-s", "2024-01-15")
        assert result.exit_code == 1
        assert "Term" in result.output

    def test_prepayment_reduces_term(self, invoke):
        result = invoke(*SAC_ARGS, "--prepayment", "2024-03-01:2000:term")
        assert result.exit_code == 0, result.output
        assert "applied at installment 3" in result.output
        assert "10 months" in result.output

    def test_non_finite_prepayment_is_reported(self, invoke):
        result = invoke(*SAC_ARGS, "--prepayment", "2024-06-01:nan:term")
        assert result.exit_code == 1
        assert "Invalid numeric value" in result.output

    def test_failed_save_is_reported(self, invoke, monkeypatch):
        def broken_set(self, key, value):
            raise OperationalError("UPDATE kv_entries", {}, Exception("disk full"))

        monkeypatch.setattr(KeyValueStore, "set", broken_set)
        result = invoke(*SAC_ARGS, "--save", "--hide-installments")
        assert result.exit_code == 1
        assert "Simulation saved with id" not in result.output
        assert "Could not save simulation" in result.output

    def test_export_json(self, invoke, tmp_path):
        path = tmp_path / "sim.json"
        result = invoke(*SAC_ARGS, "--output", str(path))
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["type"] == "SAC"
        assert len(data["installments"]) == 12

    def test_export_csv(self, invoke, tmp_path):
        path = tmp_path / "sim.csv"
        result = invoke(*SAC_ARGS, "--output", str(path))
        assert result.exit_code == 0, result.output
        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Number", "Date", "Payment", "Amortization", "Interest", "Balance"]
        assert len(rows) == 13

    def test_unsupported_export(self, invoke, tmp_path):
        result = invoke(*SAC_ARGS, "--output", str(tmp_path / "sim.pdf"))
        assert result.exit_code != 0


class TestRate:
    def test_monthly_to_annual(self, invoke):
        result = invoke("rate", "--monthly", "1")
        assert result.exit_code == 0
        assert "12.682503%" in result.output

    def test_annual_to_monthly(self, invoke):
        result = invoke("rate", "--annual", "12%")
        assert result.exit_code == 0
        assert "0.948879%" in result.output

    def test_needs_exactly_one_option(self, invoke):
        assert invoke("rate").exit_code != 0
        assert invoke("rate", "--monthly", "1", "--annual", "12").exit_code != 0

    def test_invalid_rate(self, invoke):
        result = invoke("rate", "--monthly=-100")
        assert result.exit_code == 1

    def test_non_finite_rate_is_reported(self, invoke):
        result = invoke("rate", "--monthly", "nan")
        assert result.exit_code == 1
        assert "Invalid numeric value" in result.output


class TestHistory:
    def _save(self, invoke, *extra):
        result = invoke(*SAC_ARGS, "--save", "--hide-installments", *extra)
        assert result.exit_code == 0, result.output
        line = next(l for l in result.output.splitlines() if l.startswith("Simulation saved with id"))
        return line.rsplit(" ", 1)[-1]

    def test_empty_history(self, invoke):
        result = invoke("history")
        assert result.exit_code == 0
        assert "No saved simulations yet." in result.output

    def test_save_list_show_delete(self, invoke):
        simulation_id = self._save(invoke, "--bank", "Caixa")

        listing = invoke("history", "--method", "SAC")
        assert simulation_id in listing.output
        assert "Caixa" in listing.output
        assert "No saved simulations yet." in invoke("history", "--method", "PRICE").output

        shown = invoke("show", simulation_id)
        assert shown.exit_code == 0
        assert "12780.00" in shown.output

        deleted = invoke("delete", simulation_id)
        assert deleted.exit_code == 0
        assert invoke("show", simulation_id).exit_code == 1
        assert invoke("delete", simulation_id).exit_code == 1

    def test_prepay_saved_simulation(self, invoke):
        simulation_id = self._save(invoke)
        result = invoke("prepay", simulation_id, "--date", "2024-03-01", "--amount", "2000", "--strategy", "term")
        assert result.exit_code == 0, result.output
        assert "10 months" in result.output
        assert "10 months" in invoke("show", simulation_id, "--hide-installments").output

    def test_prepay_after_schedule_end(self, invoke):
        simulation_id = self._save(invoke)
        result = invoke("prepay", simulation_id, "--date", "2030-01-01", "--amount", "2000")
        assert result.exit_code == 0
        assert "schedule unchanged" in result.output

    def test_prepay_rejects_non_finite_amount(self, invoke):
        simulation_id = self._save(invoke)
        result = invoke("prepay", simulation_id, "--date", "2024-03-01", "--amount", "nan")
        assert result.exit_code == 1
        assert "Invalid numeric value" in result.output
