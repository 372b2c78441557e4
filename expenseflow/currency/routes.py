"""Currency helper routes."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_login import login_required

from expenseflow.services.currency_service import CurrencyService
from expenseflow.utils.helpers import get_json_payload, json_response

from . import currency_bp


@currency_bp.route("/rates", methods=["GET"])
@login_required
def exchange_rates() -> Any:
    base = request.args.get("base", "USD")
    return json_response(CurrencyService.from_config(current_app.config).fetch_exchange_rates(base))


@currency_bp.route("/convert", methods=["POST"])
@login_required
def convert_currency() -> Any:
    payload = get_json_payload()
    conversion = CurrencyService.from_config(current_app.config).convert(
        payload.get("amount"), payload.get("from"), payload.get("to")
    )
    return json_response(conversion.to_dict())
