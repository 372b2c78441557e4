"""Administrative routes."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_login import current_user, login_required

from expenseflow import db
from expenseflow.auth.routes import resolve_manager
from expenseflow.errors import NotFoundError, ValidationError
from expenseflow.models import User, UserRole
from expenseflow.utils.helpers import get_json_payload, json_response, require_text, role_required

from . import admin_bp

ASSIGNABLE_ROLES = {UserRole.MANAGER, UserRole.EMPLOYEE}


def _parse_role(value: Any) -> UserRole:
    try:
        role = UserRole[str(value).upper()]
    except KeyError:
        raise ValidationError("Unsupported role.") from None
    if role not in ASSIGNABLE_ROLES:
        raise ValidationError("Unsupported role.")
    return role


def _company_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None or user.company_id != current_user.company_id:
        raise NotFoundError("User not found.")
    return user


@admin_bp.route("/users", methods=["GET"])
@login_required
@role_required(UserRole.ADMIN)
def users() -> Any:
    """List all users in the admin's company."""
    company_users = (
        User.query.filter_by(company_id=current_user.company_id).order_by(User.id).all()
    )
    return json_response({"users": [user.to_dict() for user in company_users]})


@admin_bp.route("/users", methods=["POST"])
@login_required
@role_required(UserRole.ADMIN)
def create_user() -> Any:
    """Create a new employee or manager."""
    payload = get_json_payload()
    fields = require_text(payload, "first_name", "last_name", "email", "password", "role")

    email = fields["email"].strip().lower()
    if User.query.filter_by(email=email).first():
        return json_response({"error": "Email already exists."}, status=409)

    new_user = User(
        first_name=fields["first_name"].strip(),
        last_name=fields["last_name"].strip(),
        email=email,
        role=_parse_role(fields["role"]),
        company_id=current_user.company_id,
        manager_id=resolve_manager(payload.get("manager_id"), current_user.company_id),
        is_active=bool(payload.get("is_active", True)),
    )
    new_user.set_password(fields["password"])

    db.session.add(new_user)
    db.session.commit()

    current_app.logger.info("Admin %s created user %s", current_user.id, new_user.id)
    return json_response({"message": "User created.", "user": new_user.to_dict()}, status=201)


@admin_bp.route("/users/<int:user_id>", methods=["PATCH"])
@login_required
@role_required(UserRole.ADMIN)
def update_user(user_id: int) -> Any:
    """Change a user's role, manager or active flag."""
    user = _company_user(user_id)
    payload = get_json_payload()

    unknown = set(payload) - {"role", "manager_id", "is_active"}
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "role" in payload:
        if user.role is UserRole.ADMIN:
            raise ValidationError("Admin roles cannot be changed.")
        user.role = _parse_role(payload["role"])
    if "manager_id" in payload:
        user.manager_id = resolve_manager(payload["manager_id"], user.company_id, user.id)
    if "is_active" in payload:
        user.is_active = bool(payload["is_active"])

    db.session.commit()
    return json_response({"message": "User updated.", "user": user.to_dict()})
