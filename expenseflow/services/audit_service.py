"""Audit event emission for approval decisions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from expenseflow.models import ApprovalDecisionStatus, AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    expense_id: int
    actor_id: int
    event_type: str
    comment: str
    approver_id: int
    timestamp: datetime

    @classmethod
    def for_decision(
        cls,
        *,
        expense_id: int,
        actor_id: int,
        decision: ApprovalDecisionStatus,
        comment: str,
        timestamp: datetime,
    ) -> "AuditEvent":
        return cls(
            expense_id=expense_id,
            actor_id=actor_id,
            event_type=f"expense_{decision.value}",
            comment=comment,
            approver_id=actor_id,
            timestamp=timestamp,
        )

    def payload(self) -> Dict[str, Any]:
        return {"comment": self.comment, "approver_id": self.approver_id}


def emit(store, event: AuditEvent) -> AuditLog:
    """Append ``event`` to the audit log through ``store``."""
    entry = store.insert_audit_log(
        expense_id=event.expense_id,
        user_id=event.actor_id,
        event_type=event.event_type,
        payload=event.payload(),
        created_at=event.timestamp,
    )
    logger.debug("Audit %s recorded for expense %s", event.event_type, event.expense_id)
    return entry
