"""Approval model."""
from __future__ import annotations

import enum

from expenseflow import db


class ApprovalDecisionStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseApproval(db.Model):
    __tablename__ = "approvals"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(
        db.Integer, db.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(
        db.Enum(
            ApprovalDecisionStatus,
            name="approval_decision_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ApprovalDecisionStatus.PENDING,
        index=True,
    )
    comment = db.Column(db.Text, nullable=True)
    acted_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_id": self.expense_id,
            "approver_id": self.approver_id,
            "status": self.status.value if self.status else None,
            "comment": self.comment,
            "acted_at": self.acted_at.isoformat() if self.acted_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<ExpenseApproval expense_id={self.expense_id} "
            f"status={self.status.value if self.status else None}>"
        )
