"""Approver blueprint."""
from flask import Blueprint, current_app

from expenseflow import limiter

approvals_bp = Blueprint("approvals", __name__, url_prefix="/api/approvals")

# Per client IP, across every approval route.
limiter.limit(lambda: current_app.config["APPROVAL_RATE_LIMIT"])(approvals_bp)

from . import routes  # noqa: E402,F401
