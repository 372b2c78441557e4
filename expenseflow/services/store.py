"""Storage port for the expense and approval services.

The services never touch the session directly; they talk to an
``ExpenseStore``. ``SQLAlchemyStore`` is the production implementation.
Every status change is a conditional UPDATE whose affected-row count decides
whether it happened, so two concurrent requests cannot both move a record out
of the same state.
"""
from __future__ import annotations

import abc
import logging
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expenseflow.errors import StoreError
from expenseflow.models import (
    ApprovalDecisionStatus,
    AuditLog,
    Expense,
    ExpenseApproval,
    ExpenseStatus,
    User,
)
from expenseflow.schemas import ExpenseDraft

logger = logging.getLogger(__name__)

PendingRow = Tuple[ExpenseApproval, Expense, User]


class ExpenseStore(abc.ABC):
    """Operations the lifecycle manager and approval engine rely on."""

    @abc.abstractmethod
    def unit_of_work(self):
        """Context manager: commit on success, roll back on any exception."""

    @abc.abstractmethod
    def insert_expense(
        self, *, submitter_id: int, company_id: int, draft: ExpenseDraft, created_at: datetime
    ) -> Expense:
        ...

    @abc.abstractmethod
    def get_expense(self, expense_id: int, submitter_id: Optional[int] = None) -> Optional[Expense]:
        ...

    @abc.abstractmethod
    def list_expenses(
        self,
        submitter_id: int,
        status: Optional[ExpenseStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Expense], int]:
        ...

    @abc.abstractmethod
    def transition_expense_status(
        self,
        expense_id: int,
        from_status: ExpenseStatus,
        to_status: ExpenseStatus,
        *,
        at: datetime,
        submitted_at: Optional[datetime] = None,
    ) -> bool:
        """Move the expense to ``to_status`` only if it is in ``from_status``."""

    @abc.abstractmethod
    def update_expense_fields(
        self, expense_id: int, submitter_id: int, changes: Mapping[str, Any], *, at: datetime
    ) -> bool:
        """Apply ``changes`` only while the expense is a draft."""

    @abc.abstractmethod
    def delete_expense(self, expense_id: int, submitter_id: int) -> bool:
        """Delete the expense only while it is a draft."""

    @abc.abstractmethod
    def insert_approval(self, *, expense_id: int, approver_id: int) -> ExpenseApproval:
        ...

    @abc.abstractmethod
    def get_approval(
        self, approval_id: int, approver_id: int, status: ApprovalDecisionStatus
    ) -> Optional[ExpenseApproval]:
        ...

    @abc.abstractmethod
    def list_approvals_for_expense(self, expense_id: int) -> List[ExpenseApproval]:
        ...

    @abc.abstractmethod
    def resolve_if_pending(
        self,
        approval_id: int,
        approver_id: int,
        decision: ApprovalDecisionStatus,
        comment: str,
        acted_at: datetime,
    ) -> Optional[ExpenseApproval]:
        """Resolve the approval atomically; ``None`` if it was not pending for this approver."""

    @abc.abstractmethod
    def list_pending_approvals_for_approver(self, approver_id: int) -> List[PendingRow]:
        ...

    @abc.abstractmethod
    def insert_audit_log(
        self,
        *,
        expense_id: int,
        user_id: int,
        event_type: str,
        payload: Dict[str, Any],
        created_at: datetime,
    ) -> AuditLog:
        ...

    @abc.abstractmethod
    def get_manager_id(self, user_id: int) -> Optional[int]:
        ...


def _wrap_store_errors(method: Callable) -> Callable:
    @wraps(method)
    def wrapped(self: "SQLAlchemyStore", *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("Store operation %s failed", method.__name__)
            self.session.rollback()
            raise StoreError(str(exc)) from exc

    return wrapped


class SQLAlchemyStore(ExpenseStore):
    """``ExpenseStore`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._depth = 0

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        if self._depth:
            # Joined the caller's unit of work.
            yield
            return

        self._depth += 1
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Commit failed")
            self.session.rollback()
            raise StoreError(str(exc)) from exc
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth -= 1

    # Expenses -----------------------------------------------------------

    @_wrap_store_errors
    def insert_expense(
        self, *, submitter_id: int, company_id: int, draft: ExpenseDraft, created_at: datetime
    ) -> Expense:
        expense = Expense(
            submitter_id=submitter_id,
            company_id=company_id,
            description=draft.description,
            amount=draft.amount,
            currency_code=draft.currency_code,
            category=draft.category,
            expense_date=draft.expense_date,
            status=ExpenseStatus.DRAFT,
            created_at=created_at,
            updated_at=created_at,
        )
        self.session.add(expense)
        self.session.flush()
        return expense

    @_wrap_store_errors
    def get_expense(self, expense_id: int, submitter_id: Optional[int] = None) -> Optional[Expense]:
        stmt = select(Expense).where(Expense.id == expense_id)
        if submitter_id is not None:
            stmt = stmt.where(Expense.submitter_id == submitter_id)
        stmt = stmt.execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    @_wrap_store_errors
    def list_expenses(
        self,
        submitter_id: int,
        status: Optional[ExpenseStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Expense], int]:
        criteria = [Expense.submitter_id == submitter_id]
        if status is not None:
            criteria.append(Expense.status == status)

        total = self.session.execute(
            select(func.count()).select_from(Expense).where(*criteria)
        ).scalar_one()
        rows = self.session.execute(
            select(Expense)
            .where(*criteria)
            .order_by(Expense.updated_at.desc(), Expense.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return list(rows), total

    @_wrap_store_errors
    def transition_expense_status(
        self,
        expense_id: int,
        from_status: ExpenseStatus,
        to_status: ExpenseStatus,
        *,
        at: datetime,
        submitted_at: Optional[datetime] = None,
    ) -> bool:
        values: Dict[str, Any] = {"status": to_status, "updated_at": at}
        if submitted_at is not None:
            values["submitted_at"] = submitted_at
        result = self.session.execute(
            update(Expense)
            .where(Expense.id == expense_id, Expense.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @_wrap_store_errors
    def update_expense_fields(
        self, expense_id: int, submitter_id: int, changes: Mapping[str, Any], *, at: datetime
    ) -> bool:
        result = self.session.execute(
            update(Expense)
            .where(
                Expense.id == expense_id,
                Expense.submitter_id == submitter_id,
                Expense.status == ExpenseStatus.DRAFT,
            )
            .values(**dict(changes), updated_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @_wrap_store_errors
    def delete_expense(self, expense_id: int, submitter_id: int) -> bool:
        result = self.session.execute(
            delete(Expense)
            .where(
                Expense.id == expense_id,
                Expense.submitter_id == submitter_id,
                Expense.status == ExpenseStatus.DRAFT,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # Approvals ----------------------------------------------------------

    @_wrap_store_errors
    def insert_approval(self, *, expense_id: int, approver_id: int) -> ExpenseApproval:
        approval = ExpenseApproval(
            expense_id=expense_id,
            approver_id=approver_id,
            status=ApprovalDecisionStatus.PENDING,
        )
        self.session.add(approval)
        self.session.flush()
        return approval

    @_wrap_store_errors
    def get_approval(
        self, approval_id: int, approver_id: int, status: ApprovalDecisionStatus
    ) -> Optional[ExpenseApproval]:
        return self.session.execute(
            select(ExpenseApproval)
            .where(
                ExpenseApproval.id == approval_id,
                ExpenseApproval.approver_id == approver_id,
                ExpenseApproval.status == status,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @_wrap_store_errors
    def list_approvals_for_expense(self, expense_id: int) -> List[ExpenseApproval]:
        return list(
            self.session.execute(
                select(ExpenseApproval)
                .where(ExpenseApproval.expense_id == expense_id)
                .order_by(ExpenseApproval.id)
                .execution_options(populate_existing=True)
            ).scalars()
        )

    @_wrap_store_errors
    def resolve_if_pending(
        self,
        approval_id: int,
        approver_id: int,
        decision: ApprovalDecisionStatus,
        comment: str,
        acted_at: datetime,
    ) -> Optional[ExpenseApproval]:
        result = self.session.execute(
            update(ExpenseApproval)
            .where(
                ExpenseApproval.id == approval_id,
                ExpenseApproval.approver_id == approver_id,
                ExpenseApproval.status == ApprovalDecisionStatus.PENDING,
            )
            .values(status=decision, comment=comment, acted_at=acted_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.session.get(ExpenseApproval, approval_id, populate_existing=True)

    @_wrap_store_errors
    def list_pending_approvals_for_approver(self, approver_id: int) -> List[PendingRow]:
        rows = self.session.execute(
            select(ExpenseApproval, Expense, User)
            .join(Expense, ExpenseApproval.expense_id == Expense.id)
            .join(User, Expense.submitter_id == User.id)
            .where(
                ExpenseApproval.approver_id == approver_id,
                ExpenseApproval.status == ApprovalDecisionStatus.PENDING,
            )
            .order_by(Expense.submitted_at.desc(), ExpenseApproval.id.desc())
        ).all()
        return [(approval, expense, submitter) for approval, expense, submitter in rows]

    # Audit and identity -------------------------------------------------

    @_wrap_store_errors
    def insert_audit_log(
        self,
        *,
        expense_id: int,
        user_id: int,
        event_type: str,
        payload: Dict[str, Any],
        created_at: datetime,
    ) -> AuditLog:
        entry = AuditLog(
            expense_id=expense_id,
            user_id=user_id,
            event_type=event_type,
            payload=payload,
            created_at=created_at,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    @_wrap_store_errors
    def get_manager_id(self, user_id: int) -> Optional[int]:
        return self.session.execute(
            select(User.manager_id).where(User.id == user_id)
        ).scalar_one_or_none()


def get_store() -> SQLAlchemyStore:
    """Store bound to the Flask-SQLAlchemy session of the current app."""
    from expenseflow import db

    return SQLAlchemyStore(db.session)
