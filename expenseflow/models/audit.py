"""Audit logging model.

Audit rows are append-only: the mapper listeners below refuse any UPDATE or
DELETE issued through the ORM.
"""
from __future__ import annotations

from sqlalchemy import event

from expenseflow import db


class AuditLogImmutableError(RuntimeError):
    """Raised when code tries to modify or remove an audit entry."""


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    event_type = db.Column(db.String(120), nullable=False)
    payload = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_id": self.expense_id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<AuditLog expense_id={self.expense_id} event_type={self.event_type}>"


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise AuditLogImmutableError(f"Audit log {target.id} cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise AuditLogImmutableError(f"Audit log {target.id} cannot be deleted")
