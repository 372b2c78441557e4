"""Expense lifecycle: draft -> pending -> approved | rejected."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from math import ceil
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from expenseflow.config import DEFAULT_SUPPORTED_CURRENCIES
from expenseflow.errors import InvalidStateError, NotFoundError, ValidationError
from expenseflow.models import Expense, ExpenseApproval, ExpenseStatus
from expenseflow.schemas import ExpenseDraft, ExpenseUpdate
from expenseflow.services.approval_engine import ApprovalEngine
from expenseflow.services.store import ExpenseStore
from expenseflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ExpensePage:
    expenses: List[Expense]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.total else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expenses": [expense.to_dict() for expense in self.expenses],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "pages": self.pages,
            },
        }


class ExpenseService:
    def __init__(
        self,
        store: ExpenseStore,
        supported_currencies: Iterable[str] = DEFAULT_SUPPORTED_CURRENCIES,
    ) -> None:
        self.store = store
        self.supported_currencies = tuple(supported_currencies)
        self.approvals = ApprovalEngine(store)

    def create(
        self, submitter_id: int, company_id: int, fields: Union[ExpenseDraft, Mapping[str, Any]]
    ) -> Expense:
        draft = (
            fields
            if isinstance(fields, ExpenseDraft)
            else ExpenseDraft.from_payload(fields, self.supported_currencies)
        )
        with self.store.unit_of_work():
            expense = self.store.insert_expense(
                submitter_id=submitter_id,
                company_id=company_id,
                draft=draft,
                created_at=utcnow(),
            )
        logger.info("Expense %s created by user %s", expense.id, submitter_id)
        return expense

    def get(self, expense_id: int, requester_id: int) -> Tuple[Expense, List[ExpenseApproval]]:
        expense = self._owned(expense_id, requester_id)
        return expense, self.store.list_approvals_for_expense(expense.id)

    def list_expenses(
        self,
        requester_id: int,
        status: Optional[Union[str, ExpenseStatus]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ExpensePage:
        if status is not None and not isinstance(status, ExpenseStatus):
            try:
                status = ExpenseStatus(str(status).strip().lower())
            except ValueError:
                raise ValidationError(f"Unknown status '{status}'.") from None
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers.")
        limit = min(limit, MAX_PAGE_SIZE)

        expenses, total = self.store.list_expenses(
            requester_id, status=status, offset=(page - 1) * limit, limit=limit
        )
        return ExpensePage(expenses=expenses, page=page, limit=limit, total=total)

    def update(self, expense_id: int, requester_id: int, changes: ExpenseUpdate) -> Expense:
        values = changes.changes()
        if not values:
            raise ValidationError("No valid fields to update")

        with self.store.unit_of_work():
            self._draft(expense_id, requester_id, "Can only update draft expenses")
            if not self.store.update_expense_fields(expense_id, requester_id, values, at=utcnow()):
                raise InvalidStateError("Can only update draft expenses")
            expense = self.store.get_expense(expense_id, requester_id)

        logger.info("Expense %s updated (%s)", expense_id, ", ".join(sorted(values)))
        return expense

    def delete(self, expense_id: int, requester_id: int) -> None:
        with self.store.unit_of_work():
            self._draft(expense_id, requester_id, "Can only delete draft expenses")
            if not self.store.delete_expense(expense_id, requester_id):
                raise InvalidStateError("Can only delete draft expenses")
        logger.info("Expense %s deleted", expense_id)

    def submit(self, expense_id: int, requester_id: int) -> Tuple[Expense, Optional[ExpenseApproval]]:
        """Send a draft for approval; the approval is ``None`` without a manager."""
        with self.store.unit_of_work():
            self._draft(expense_id, requester_id, "Expense is not in draft status")
            now = utcnow()
            moved = self.store.transition_expense_status(
                expense_id,
                ExpenseStatus.DRAFT,
                ExpenseStatus.PENDING,
                at=now,
                submitted_at=now,
            )
            if not moved:
                raise InvalidStateError("Expense is not in draft status")
            approval = self.approvals.create_for_submission(expense_id, requester_id)
            expense = self.store.get_expense(expense_id, requester_id)

        logger.info("Expense %s submitted for approval", expense_id)
        return expense, approval

    def _owned(self, expense_id: int, requester_id: int) -> Expense:
        expense = self.store.get_expense(expense_id, requester_id)
        if expense is None:
            raise NotFoundError("Expense not found")
        return expense

    def _draft(self, expense_id: int, requester_id: int, message: str) -> Expense:
        expense = self._owned(expense_id, requester_id)
        if expense.status is not ExpenseStatus.DRAFT:
            raise InvalidStateError(message)
        return expense
