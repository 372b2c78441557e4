"""Error types raised by the expense services.

Every error carries the HTTP status the API layer answers with, so routes can
let them propagate and rely on the handlers registered in ``create_app``.
"""
from __future__ import annotations

from typing import Any, Dict


class ExpenseFlowError(Exception):
    """Base class for all application errors."""

    status_code = 500
    public_message = None

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.public_message or self.message}


class ValidationError(ExpenseFlowError):
    """Malformed or out-of-range input. Always fixable by the caller."""

    status_code = 400


class NotFoundError(ExpenseFlowError):
    """Entity missing, or not owned by / actionable for the requester."""

    status_code = 404


class InvalidStateError(ExpenseFlowError):
    """Operation not allowed in the entity's current status."""

    status_code = 400


class StoreError(ExpenseFlowError):
    """Backing store failure. The detail is logged, never returned."""

    status_code = 500
    public_message = "Internal server error"


class ExternalServiceError(ExpenseFlowError):
    """Currency or OCR collaborator failed."""

    status_code = 502
