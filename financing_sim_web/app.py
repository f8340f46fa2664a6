import os

from flask import Flask, jsonify, request

from financing_sim.config import Settings
from financing_sim.data_models import PrepaymentEvent
from financing_sim.engine import build_simulation
from financing_sim.exceptions import FinancingSimError, InvalidInputError, SimulationNotFoundError, StorageError
from financing_sim.logging import get_logger, setup_logging
from financing_sim.prepayment import apply_prepayment
from financing_sim.rates import annual_to_monthly, fraction_to_percent, monthly_to_annual, percent_to_fraction
from financing_sim.serialization import simulation_to_dict
from financing_sim.store import SimulationRepository, create_store_from_env
from financing_sim.utils import decimal_from_str, parse_date

logger = get_logger(__name__)


def _require(payload: dict, name: str):
    value = payload.get(name)
    if value is None or value == "":
        raise InvalidInputError(f"Field '{name}' is required")
    return value


def _payload_to_simulation(payload: dict):
    monthly = payload.get("monthlyRate")
    annual = payload.get("annualRate")
    if monthly not in (None, ""):
        rate = percent_to_fraction(decimal_from_str(str(monthly)))
    elif annual not in (None, ""):
        rate = annual_to_monthly(percent_to_fraction(decimal_from_str(str(annual))))
    else:
        raise InvalidInputError("Either 'monthlyRate' or 'annualRate' is required")
    months = _whole_months(_require(payload, "months"))
    operation_date = payload.get("operationDate")
    return build_simulation(
        payload.get("type", "PRICE"),
        decimal_from_str(str(_require(payload, "financingAmount"))),
        decimal_from_str(str(payload.get("downPayment") or 0)),
        months,
        rate,
        parse_date(str(_require(payload, "firstPaymentDate"))),
        bank=payload.get("bank") or "",
        operation_date=parse_date(operation_date) if operation_date else None,
    )


def _whole_months(value) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid term: {value}")
    months = decimal_from_str(str(value))
    if months != months.to_integral_value():
        raise InvalidInputError(f"Term must be a whole number of months; got {value}")
    return int(months)


def _payload_to_event(payload: dict) -> PrepaymentEvent:
    return PrepaymentEvent(
        effective_date=parse_date(str(_require(payload, "date"))),
        amount=decimal_from_str(str(_require(payload, "amount"))),
        strategy=payload.get("strategy", "installment"),
    )


def _summary_view(simulation, preview_rows: int) -> dict:
    """Serialize a simulation, cutting the installment list to ``preview_rows``."""
    data = simulation_to_dict(simulation)
    installments = data["installments"]
    if preview_rows and len(installments) > preview_rows:
        data["installments"] = installments[:preview_rows]
        data["truncated"] = len(installments) - preview_rows
    return data


def create_app(settings: Settings = None, repository: SimulationRepository = None) -> Flask:
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    if repository is None:
        repository = SimulationRepository(
            create_store_from_env(settings.database_url), settings.storage_key
        )
    app.config["SIMULATIONS"] = repository

    @app.errorhandler(SimulationNotFoundError)
    def handle_not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(StorageError)
    def handle_storage_error(exc):
        logger.error("Storage failure: %s", exc)
        return jsonify({"error": str(exc)}), 500

    @app.errorhandler(FinancingSimError)
    def handle_invalid(exc):
        logger.info("Rejected request: %s", exc)
        return jsonify({"error": str(exc)}), 400

    @app.post("/api/simulations")
    def create_simulation():
        payload = request.get_json(silent=True) or {}
        simulation = _payload_to_simulation(payload)
        show_full = bool(payload.get("showFullSchedule"))
        status = 200
        if payload.get("save"):
            repository.add(simulation)
            status = 201
        return jsonify(_summary_view(simulation, 0 if show_full else settings.preview_rows)), status

    @app.get("/api/simulations")
    def list_simulations():
        method = request.args.get("method", "ALL")
        return jsonify(
            [_summary_view(s, 0) for s in repository.list_simulations(method)]
        )

    @app.get("/api/simulations/<simulation_id>")
    def get_simulation(simulation_id):
        return jsonify(simulation_to_dict(repository.get(simulation_id)))

    @app.delete("/api/simulations/<simulation_id>")
    def delete_simulation(simulation_id):
        if not repository.remove(simulation_id):
            raise SimulationNotFoundError(f"Simulation {simulation_id} not found")
        return "", 204

    @app.post("/api/simulations/<simulation_id>/prepayments")
    def add_prepayment(simulation_id):
        payload = request.get_json(silent=True) or {}
        event = _payload_to_event(payload)
        result = apply_prepayment(repository.get(simulation_id), event)
        if not result.no_effect and not repository.replace(result.simulation):
            return jsonify({"error": "Could not save the updated simulation"}), 500
        return jsonify(
            {
                "status": result.status,
                "installmentNumber": result.installment_number,
                "appliedAmount": float(result.applied_amount),
                "excess": float(result.excess),
                "simulation": simulation_to_dict(result.simulation),
            }
        )

    @app.get("/api/rates")
    def convert_rate():
        monthly = request.args.get("monthly")
        annual = request.args.get("annual")
        if (monthly is None) == (annual is None):
            raise InvalidInputError("Provide exactly one of 'monthly' or 'annual'")
        if monthly is not None:
            monthly_fraction = percent_to_fraction(decimal_from_str(monthly))
            annual_fraction = monthly_to_annual(monthly_fraction)
        else:
            annual_fraction = percent_to_fraction(decimal_from_str(annual))
            monthly_fraction = annual_to_monthly(annual_fraction)
        return jsonify(
            {
                "monthly": float(fraction_to_percent(monthly_fraction)),
                "annual": float(fraction_to_percent(annual_fraction)),
            }
        )

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)
    print("Starting financing simulator API...")
    create_app(settings).run(
        host="0.0.0.0", port=int(os.environ.get("PORT", "8710")), debug=settings.debug
    )
