"""Tests for the Flask JSON API."""

import pytest
from sqlalchemy.exc import OperationalError

from financing_sim_web.app import create_app


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    return app.test_client()


SAC_PAYLOAD = {
    "type": "SAC",
    "financingAmount": 15000,
    "downPayment": 3000,
    "months": 12,
    "monthlyRate": 1,
    "firstPaymentDate": "2024-01-15",
    "bank": "Caixa",
}


def _save(client, payload=None):
    response = client.post("/api/simulations", json=dict(payload or SAC_PAYLOAD, save=True))
    assert response.status_code == 201
    return response.get_json()


class TestSimulate:
    def test_simulate_without_saving(self, client):
        response = client.post("/api/simulations", json=SAC_PAYLOAD)
        assert response.status_code == 200
        data = response.get_json()
        assert data["type"] == "SAC"
        assert data["financingAmount"] == 15000
        assert data["totalAmount"] == pytest.approx(12780.0)
        assert data["firstPayment"] == pytest.approx(1120.0)
        assert len(data["installments"]) == 12
        assert client.get("/api/simulations").get_json() == []

    def test_annual_rate(self, client):
        payload = dict(SAC_PAYLOAD, monthlyRate=None, annualRate=12.682503013196972)
        data = client.post("/api/simulations", json=payload).get_json()
        assert data["monthlyRate"] == pytest.approx(1.0)

    def test_long_schedule_is_previewed(self, settings):
        settings.preview_rows = 24
        client = create_app(settings).test_client()
        data = client.post("/api/simulations", json=dict(SAC_PAYLOAD, months=360)).get_json()
        assert len(data["installments"]) == 24
        assert data["truncated"] == 336

        full = client.post("/api/simulations", json=dict(SAC_PAYLOAD, months=360, showFullSchedule=True)).get_json()
        assert len(full["installments"]) == 360

    @pytest.mark.parametrize(
        "change",
        [
            {"months": 0},
            {"months": "twelve"},
            {"months": 12.7},
            {"months": True},
            {"financingAmount": 1000},
            {"monthlyRate": -100},
            {"type": "GERMAN"},
            {"firstPaymentDate": "someday"},
            {"monthlyRate": None},
        ],
    )
    def test_invalid_input(self, client, change):
        response = client.post("/api/simulations", json=dict(SAC_PAYLOAD, **change))
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_integral_term_as_float_or_string(self, client):
        assert client.post("/api/simulations", json=dict(SAC_PAYLOAD, months=12.0)).status_code == 200
        data = client.post("/api/simulations", json=dict(SAC_PAYLOAD, months="12")).get_json()
        assert data["months"] == 12

    def test_failed_save_is_a_server_error(self, settings, repository, monkeypatch):
        def broken_set(key, value):
            raise OperationalError("UPDATE kv_entries", {}, Exception("disk full"))

        monkeypatch.setattr(repository._store, "set", broken_set)
        client = create_app(settings, repository=repository).test_client()
        response = client.post("/api/simulations", json=dict(SAC_PAYLOAD, save=True))
        assert response.status_code == 500
        assert "error" in response.get_json()
        monkeypatch.undo()
        assert repository.load() == []


class TestHistory:
    def test_save_list_filter_get_delete(self, client):
        saved = _save(client)
        _save(client, dict(SAC_PAYLOAD, type="PRICE"))

        assert len(client.get("/api/simulations").get_json()) == 2
        sac_only = client.get("/api/simulations?method=SAC").get_json()
        assert [s["id"] for s in sac_only] == [saved["id"]]

        fetched = client.get(f"/api/simulations/{saved['id']}").get_json()
        assert fetched["bank"] == "Caixa"

        assert client.delete(f"/api/simulations/{saved['id']}").status_code == 204
        assert client.get(f"/api/simulations/{saved['id']}").status_code == 404
        assert client.delete(f"/api/simulations/{saved['id']}").status_code == 404

    def test_unknown_method_filter(self, client):
        assert client.get("/api/simulations?method=GERMAN").status_code == 400


class TestPrepayments:
    def test_reduce_installment(self, client):
        saved = _save(client)
        response = client.post(
            f"/api/simulations/{saved['id']}/prepayments",
            json={"date": "2024-03-01", "amount": 2000, "strategy": "installment"},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "applied"
        assert data["installmentNumber"] == 3
        assert data["simulation"]["installments"][2]["payment"] == pytest.approx(880.0)

        stored = client.get(f"/api/simulations/{saved['id']}").get_json()
        assert stored["prepayments"][0]["amount"] == 2000.0

    def test_over_payment(self, client):
        saved = _save(client)
        data = client.post(
            f"/api/simulations/{saved['id']}/prepayments",
            json={"date": "2024-03-01", "amount": 15000, "strategy": "term"},
        ).get_json()
        assert data["status"] == "over_payment"
        assert data["excess"] == pytest.approx(5000.0)
        assert data["simulation"]["months"] == 2

    def test_no_effect(self, client):
        saved = _save(client)
        data = client.post(
            f"/api/simulations/{saved['id']}/prepayments",
            json={"date": "2030-01-01", "amount": 100},
        ).get_json()
        assert data["status"] == "no_effect"
        assert data["installmentNumber"] is None

    def test_zero_amount_rejected(self, client):
        saved = _save(client)
        response = client.post(
            f"/api/simulations/{saved['id']}/prepayments",
            json={"date": "2024-03-01", "amount": 0},
        )
        assert response.status_code == 400

    def test_unknown_simulation(self, client):
        response = client.post(
            "/api/simulations/nope/prepayments", json={"date": "2024-03-01", "amount": 10}
        )
        assert response.status_code == 404


class TestRates:
    def test_monthly(self, client):
        data = client.get("/api/rates?monthly=1").get_json()
        assert data["annual"] == pytest.approx(12.682503013, abs=1e-8)

    def test_annual(self, client):
        data = client.get("/api/rates?annual=12").get_json()
        assert data["monthly"] == pytest.approx(0.948879293, abs=1e-8)

    def test_requires_one_parameter(self, client):
        assert client.get("/api/rates").status_code == 400
        assert client.get("/api/rates?monthly=1&annual=12").status_code == 400

    def test_invalid_rate(self, client):
        assert client.get("/api/rates?annual=-100").status_code == 400
