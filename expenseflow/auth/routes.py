"""Authentication routes."""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, session
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from expenseflow import db
from expenseflow.errors import NotFoundError, ValidationError
from expenseflow.models import Company, User, UserRole
from expenseflow.utils.helpers import get_json_payload, json_response, require_text

from . import auth_bp


def resolve_manager(manager_id: Any, company_id: int, user_id: Optional[int] = None) -> Optional[int]:
    """Validate ``manager_id`` for a user of ``company_id``; ``None`` clears it."""
    if manager_id in (None, ""):
        return None
    try:
        manager_id = int(manager_id)
    except (TypeError, ValueError):
        raise ValidationError("manager_id must be an integer.") from None
    if user_id is not None and manager_id == user_id:
        raise ValidationError("A user cannot be their own manager.")
    manager = db.session.get(User, manager_id)
    if manager is None or manager.company_id != company_id:
        raise ValidationError("Manager must belong to the same company.")
    return manager.id


def _bootstrap_company(payload: Dict[str, Any]) -> Company:
    """Create the first company; its founder becomes the admin."""
    company_name = payload.get("company_name")
    if not isinstance(company_name, str) or not company_name.strip():
        raise ValidationError("Company name is required for first signup.")
    company = Company(
        name=company_name.strip(),
        country=payload.get("country"),
        currency_code=current_app.config.get("DEFAULT_CURRENCY", "USD"),
    )
    db.session.add(company)
    db.session.flush()
    return company


def _existing_company(payload: Dict[str, Any]) -> Company:
    company = None
    if payload.get("company_id"):
        try:
            company_id = int(payload["company_id"])
        except (TypeError, ValueError):
            raise ValidationError("company_id must be an integer.") from None
        company = db.session.get(Company, company_id)
    elif isinstance(payload.get("company_name"), str) and payload["company_name"].strip():
        company = Company.query.filter_by(name=payload["company_name"]).first()
    if company is None:
        raise NotFoundError("Company not found.")
    return company


def _self_service_role(value: Any) -> UserRole:
    requested = str(value or UserRole.EMPLOYEE.value).upper()
    try:
        role = UserRole[requested]
    except KeyError:
        raise ValidationError(f"Unknown role '{requested}'.") from None
    if role is UserRole.ADMIN:
        raise ValidationError("Admins are created by an existing admin.")
    return role


@auth_bp.route("/signup", methods=["POST"])
def signup() -> Any:
    """Register a new user, bootstrapping the company on first signup."""
    payload = get_json_payload()

    fields = require_text(payload, "email", "password", "first_name", "last_name")

    email = fields["email"].strip().lower()
    if User.query.filter_by(email=email).first():
        return json_response({"error": "Email already registered."}, status=409)

    if Company.query.count() == 0:
        company = _bootstrap_company(payload)
        role, manager_id = UserRole.ADMIN, None
    else:
        company = _existing_company(payload)
        role = _self_service_role(payload.get("role"))
        manager_id = resolve_manager(payload.get("manager_id"), company.id)

    user = User(
        first_name=fields["first_name"].strip(),
        last_name=fields["last_name"].strip(),
        email=email,
        role=role,
        company_id=company.id,
        manager_id=manager_id,
    )
    user.set_password(fields["password"])

    db.session.add(user)
    db.session.commit()
    login_user(user)

    current_app.logger.info("User %s signed up (company %s)", user.id, company.id)
    return json_response({"message": "Signup successful.", "user": user.to_dict()}, status=201)


@auth_bp.route("/login", methods=["POST"])
def login() -> Any:
    """Authenticate a user using email/password."""
    payload = get_json_payload()
    email = payload.get("email")
    password = payload.get("password")

    if not email or not password:
        raise ValidationError("Email and password are required.")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings.")
    email = email.strip().lower()

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return json_response({"error": "Invalid credentials."}, status=401)

    if not user.is_active:
        return json_response({"error": "User account is inactive."}, status=403)

    login_user(user, remember=bool(payload.get("remember", False)))
    return json_response({"message": "Login successful.", "user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout() -> Any:
    """Terminate the user session."""
    logout_user()
    session.clear()
    return json_response({"message": "Logged out."})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me() -> Any:
    return json_response({"user": current_user.to_dict()})


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token() -> Any:
    """Token for the ``X-CSRFToken`` header on state-changing requests."""
    return json_response({"csrf_token": generate_csrf()})
