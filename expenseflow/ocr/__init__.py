"""Receipt OCR blueprint."""
from flask import Blueprint

ocr_bp = Blueprint("ocr", __name__, url_prefix="/api/ocr")

from . import routes  # noqa: E402,F401
