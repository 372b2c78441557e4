"""General helper utilities."""
from __future__ import annotations

from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict

from flask import jsonify, request
from flask_login import current_user

from expenseflow.errors import ValidationError
from expenseflow.models import UserRole

JsonView = Callable[..., Any]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def json_response(payload: Any, status: int = 200):
    """Return a JSON response with status code."""
    return jsonify(payload), status


def get_json_payload() -> Dict[str, Any]:
    """Return the request's JSON object body, or raise ValidationError."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def role_required(*roles: UserRole):
    """Restrict a route to one or more roles."""
    def decorator(view_func: JsonView) -> JsonView:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_response({"error": "Authentication required."}, status=401)
            if current_user.role not in roles:
                return json_response({"error": "Insufficient permissions."}, status=403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


def require_text(payload: Dict[str, Any], *fields: str) -> Dict[str, str]:
    """Return the named fields, each of which must be a non-blank string."""
    missing = set(fields) - payload.keys()
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")
    values: Dict[str, str] = {}
    for name in fields:
        value = payload[name]
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} must be a non-empty string.")
        values[name] = value
    return values
