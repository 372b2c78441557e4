"""Employee expense routes."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_login import current_user, login_required

from expenseflow import db
from expenseflow.models import User
from expenseflow.schemas import ExpenseUpdate
from expenseflow.services.email_service import email_service
from expenseflow.services.expense_service import ExpenseService
from expenseflow.services.store import get_store
from expenseflow.utils.helpers import get_json_payload, json_response

from . import expenses_bp


def _service() -> ExpenseService:
    return ExpenseService(get_store(), current_app.config["SUPPORTED_CURRENCIES"])


@expenses_bp.route("", methods=["GET"])
@login_required
def list_expenses() -> Any:
    """Page through the current user's expenses, newest change first."""
    page = _service().list_expenses(
        current_user.id,
        status=request.args.get("status") or None,
        page=request.args.get("page", default=1, type=int),
        limit=request.args.get("limit", default=10, type=int),
    )
    return json_response(page.to_dict())


@expenses_bp.route("/<int:expense_id>", methods=["GET"])
@login_required
def get_expense(expense_id: int) -> Any:
    expense, approvals = _service().get(expense_id, current_user.id)
    return json_response(
        {
            "expense": expense.to_dict(),
            "approvals": [approval.to_dict() for approval in approvals],
        }
    )


@expenses_bp.route("", methods=["POST"])
@login_required
def create_expense() -> Any:
    """Create a draft expense owned by the current user."""
    expense = _service().create(current_user.id, current_user.company_id, get_json_payload())
    return json_response(
        {"message": "Expense created successfully", "expense": expense.to_dict()},
        status=201,
    )


@expenses_bp.route("/<int:expense_id>", methods=["PUT"])
@login_required
def update_expense(expense_id: int) -> Any:
    changes = ExpenseUpdate.from_payload(
        get_json_payload(), current_app.config["SUPPORTED_CURRENCIES"]
    )
    expense = _service().update(expense_id, current_user.id, changes)
    return json_response({"message": "Expense updated successfully", "expense": expense.to_dict()})


@expenses_bp.route("/<int:expense_id>", methods=["DELETE"])
@login_required
def delete_expense(expense_id: int) -> Any:
    _service().delete(expense_id, current_user.id)
    return json_response({"message": "Expense deleted successfully"})


@expenses_bp.route("/<int:expense_id>/submit", methods=["POST"])
@login_required
def submit_expense(expense_id: int) -> Any:
    """Submit a draft expense to the current user's manager."""
    expense, approval = _service().submit(expense_id, current_user.id)

    if approval is not None:
        approver = db.session.get(User, approval.approver_id)
        if approver is not None:
            email_service.notify_approval_requested(approver, current_user, expense)

    return json_response(
        {
            "message": "Expense submitted for approval",
            "expense": expense.to_dict(),
            "approval": approval.to_dict() if approval else None,
        }
    )
