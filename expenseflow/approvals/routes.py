"""Approver routes.

Any authenticated user may call these; the approval lookup itself only matches
approvals assigned to the caller, so other users simply see nothing.
"""
from __future__ import annotations

from typing import Any

from flask_login import current_user, login_required

from expenseflow import db
from expenseflow.models import ApprovalDecisionStatus, User
from expenseflow.services.approval_engine import ApprovalEngine
from expenseflow.services.email_service import email_service
from expenseflow.services.store import get_store
from expenseflow.utils.helpers import get_json_payload, json_response

from . import approvals_bp


@approvals_bp.route("/pending", methods=["GET"])
@login_required
def pending_approvals() -> Any:
    """Return pending approvals assigned to the current user."""
    pending = ApprovalEngine(get_store()).list_pending(current_user.id)
    return json_response([item.to_dict() for item in pending])


def _resolve(approval_id: int, decision: ApprovalDecisionStatus) -> Any:
    payload = get_json_payload()
    comment = payload.get("comments", payload.get("comment"))

    expense, approval = ApprovalEngine(get_store()).resolve(
        approval_id, current_user.id, decision, comment
    )

    submitter = db.session.get(User, expense.submitter_id)
    if submitter is not None:
        email_service.notify_expense_decided(submitter, expense, approval)

    return json_response(
        {
            "message": f"Expense {decision.value} successfully",
            "status": decision.value,
            "expense": expense.to_dict(),
            "approval": approval.to_dict(),
        }
    )


@approvals_bp.route("/<int:approval_id>/approve", methods=["POST"])
@login_required
def approve_expense(approval_id: int) -> Any:
    return _resolve(approval_id, ApprovalDecisionStatus.APPROVED)


@approvals_bp.route("/<int:approval_id>/reject", methods=["POST"])
@login_required
def reject_expense(approval_id: int) -> Any:
    """Reject a pending expense; a comment is mandatory."""
    return _resolve(approval_id, ApprovalDecisionStatus.REJECTED)
