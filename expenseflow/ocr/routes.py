"""Receipt OCR routes."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_login import login_required

from expenseflow.errors import ValidationError
from expenseflow.services import ocr_service
from expenseflow.utils.helpers import json_response

from . import ocr_bp


@ocr_bp.route("/extract", methods=["POST"])
@login_required
def extract_text() -> Any:
    """Scan an uploaded receipt and return suggested expense fields."""
    receipt = request.files.get("receipt")
    if receipt is None or not receipt.filename:
        raise ValidationError("No image file provided")

    scan = ocr_service.scan_receipt(
        receipt.stream,
        mimetype=receipt.mimetype,
        language=current_app.config.get("OCR_LANGUAGE", "eng"),
    )
    return json_response({"message": "Text extracted successfully", "data": scan.to_dict()})
