"""Single-step approval workflow.

Submitting an expense creates one pending approval for the submitter's
direct manager. Resolving that approval decides the expense and records an
audit entry, all in one unit of work.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from expenseflow.errors import InvalidStateError, NotFoundError, ValidationError
from expenseflow.models import (
    ApprovalDecisionStatus,
    Expense,
    ExpenseApproval,
    ExpenseStatus,
    User,
)
from expenseflow.services import audit_service
from expenseflow.services.store import ExpenseStore
from expenseflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DECISIONS = {ApprovalDecisionStatus.APPROVED, ApprovalDecisionStatus.REJECTED}


@dataclass(frozen=True)
class PendingApproval:
    approval: ExpenseApproval
    expense: Expense
    submitter: User

    def to_dict(self) -> Dict[str, Any]:
        data = self.expense.to_dict()
        data.update(
            approval_id=self.approval.id,
            approver_id=self.approval.approver_id,
            first_name=self.submitter.first_name,
            last_name=self.submitter.last_name,
            email=self.submitter.email,
        )
        return data


def parse_decision(value: Union[str, ApprovalDecisionStatus]) -> ApprovalDecisionStatus:
    if isinstance(value, ApprovalDecisionStatus):
        decision = value
    else:
        try:
            decision = ApprovalDecisionStatus(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown decision '{value}'.") from None
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approved' or 'rejected'.")
    return decision


class ApprovalEngine:
    def __init__(self, store: ExpenseStore) -> None:
        self.store = store

    def create_for_submission(self, expense_id: int, submitter_id: int) -> Optional[ExpenseApproval]:
        """Route a freshly submitted expense to the submitter's manager.

        Returns ``None`` when the submitter has no manager; the expense then
        stays pending with nobody able to resolve it.
        """
        with self.store.unit_of_work():
            manager_id = self.store.get_manager_id(submitter_id)
            if manager_id is None:
                logger.warning(
                    "User %s has no manager; expense %s stays pending without an approver",
                    submitter_id,
                    expense_id,
                )
                return None
            approval = self.store.insert_approval(expense_id=expense_id, approver_id=manager_id)

        logger.info("Approval %s created for expense %s (approver %s)", approval.id, expense_id, manager_id)
        return approval

    def list_pending(self, approver_id: int) -> List[PendingApproval]:
        rows = self.store.list_pending_approvals_for_approver(approver_id)
        return [PendingApproval(approval, expense, submitter) for approval, expense, submitter in rows]

    def resolve(
        self,
        approval_id: int,
        actor_id: int,
        decision: Union[str, ApprovalDecisionStatus],
        comment: Optional[str] = None,
    ) -> Tuple[Expense, ExpenseApproval]:
        """Approve or reject a pending approval owned by ``actor_id``."""
        decision = parse_decision(decision)
        if comment is not None and not isinstance(comment, str):
            raise ValidationError("comment must be a string.")
        comment = (comment or "").strip()
        if decision is ApprovalDecisionStatus.REJECTED and not comment:
            raise ValidationError("Rejection comments are required")

        now = utcnow()
        with self.store.unit_of_work():
            approval = self.store.resolve_if_pending(approval_id, actor_id, decision, comment, now)
            if approval is None:
                raise NotFoundError("Approval workflow not found or not authorized")

            moved = self.store.transition_expense_status(
                approval.expense_id,
                ExpenseStatus.PENDING,
                ExpenseStatus(decision.value),
                at=now,
            )
            if not moved:
                raise InvalidStateError("Expense is no longer pending")

            audit_service.emit(
                self.store,
                audit_service.AuditEvent.for_decision(
                    expense_id=approval.expense_id,
                    actor_id=actor_id,
                    decision=decision,
                    comment=comment,
                    timestamp=now,
                ),
            )
            expense = self.store.get_expense(approval.expense_id)

        logger.info("Expense %s %s by user %s", expense.id, decision.value, actor_id)
        return expense, approval
