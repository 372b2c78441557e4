"""Expense model definitions."""
from __future__ import annotations

import enum

from expenseflow import db


class ExpenseStatus(enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Expense(db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    submitter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency_code = db.Column(db.String(3), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    status = db.Column(
        db.Enum(ExpenseStatus, name="expense_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ExpenseStatus.DRAFT,
        index=True,
    )
    submitted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)

    __table_args__ = (db.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "submitter_id": self.submitter_id,
            "company_id": self.company_id,
            "description": self.description,
            "amount": str(self.amount) if self.amount is not None else None,
            "currency_code": self.currency_code,
            "category": self.category,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "status": self.status.value if self.status else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Expense id={self.id} status={self.status.value if self.status else None}>"
