"""Tests for the expense lifecycle service."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from expenseflow.errors import InvalidStateError, NotFoundError, StoreError, ValidationError
from expenseflow.models import ApprovalDecisionStatus, ExpenseStatus
from expenseflow.schemas import ExpenseUpdate
from expenseflow.services.approval_engine import ApprovalEngine
from expenseflow.services.expense_service import ExpenseService

FIELDS = {
    "description": "Taxi to airport",
    "amount": "500.00",
    "currency_code": "USD",
    "category": "Travel",
    "expense_date": "2025-01-15",
}


@pytest.fixture
def service(memory_store) -> ExpenseService:
    return ExpenseService(memory_store)


def _terminal_expense(service: ExpenseService, store, status: ApprovalDecisionStatus) -> int:
    expense = service.create(1, 1, FIELDS)
    _, approval = service.submit(expense.id, 1)
    ApprovalEngine(store).resolve(approval.id, 2, status, "done")
    return expense.id


class TestCreate:
    """Tests for ExpenseService.create."""

    def test_creates_draft(self, service: ExpenseService) -> None:
        """New expenses start as drafts with no submission time."""
        expense = service.create(1, 7, FIELDS)
        assert expense.status is ExpenseStatus.DRAFT
        assert expense.amount == Decimal("500.00")
        assert expense.currency_code == "USD"
        assert expense.expense_date == date(2025, 1, 15)
        assert expense.company_id == 7
        assert expense.submitted_at is None
        assert expense.created_at == expense.updated_at

    @pytest.mark.parametrize(
        "amount", [0, -1, "-0.01", "abc", None, True, "1e30", "1e+30", "1E+400", 1e30]
    )
    def test_rejects_bad_amount(self, service: ExpenseService, amount) -> None:
        """Amounts must be positive numbers."""
        with pytest.raises(ValidationError):
            service.create(1, 1, {**FIELDS, "amount": amount})

    @pytest.mark.parametrize("currency", ["US", "USDD", "12A", "XXX", ""])
    def test_rejects_bad_currency(self, service: ExpenseService, currency: str) -> None:
        """Currency must be a recognised 3-letter code."""
        with pytest.raises(ValidationError):
            service.create(1, 1, {**FIELDS, "currency_code": currency})

    @pytest.mark.parametrize("missing", ["category", "expense_date", "amount"])
    def test_rejects_missing_required(self, service: ExpenseService, missing: str) -> None:
        fields = dict(FIELDS)
        del fields[missing]
        with pytest.raises(ValidationError):
            service.create(1, 1, fields)

    def test_currency_defaults_to_usd(self, service: ExpenseService) -> None:
        fields = dict(FIELDS)
        del fields["currency_code"]
        assert service.create(1, 1, fields).currency_code == "USD"

    def test_nothing_stored_on_validation_failure(self, service: ExpenseService, memory_store) -> None:
        with pytest.raises(ValidationError):
            service.create(1, 1, {**FIELDS, "amount": 0})
        assert memory_store.expenses == {}


class TestUpdateDelete:
    """Tests for draft-only mutations."""

    def test_update_applies_only_given_fields(self, service: ExpenseService) -> None:
        expense = service.create(1, 1, FIELDS)
        updated = service.update(expense.id, 1, ExpenseUpdate(amount=Decimal("42.10")))
        assert updated.amount == Decimal("42.10")
        assert updated.category == "Travel"
        assert updated.description == "Taxi to airport"

    def test_update_unknown_expense(self, service: ExpenseService) -> None:
        with pytest.raises(NotFoundError):
            service.update(99, 1, ExpenseUpdate(category="Meals"))

    def test_update_other_users_expense(self, service: ExpenseService) -> None:
        """Ownership is part of the lookup, so a stranger gets NotFound."""
        expense = service.create(1, 1, FIELDS)
        with pytest.raises(NotFoundError):
            service.update(expense.id, 3, ExpenseUpdate(category="Meals"))

    def test_update_requires_changes(self, service: ExpenseService) -> None:
        expense = service.create(1, 1, FIELDS)
        with pytest.raises(ValidationError):
            service.update(expense.id, 1, ExpenseUpdate())

    def test_delete_draft(self, service: ExpenseService, memory_store) -> None:
        expense = service.create(1, 1, FIELDS)
        service.delete(expense.id, 1)
        assert expense.id not in memory_store.expenses

    def test_delete_other_users_expense(self, service: ExpenseService, memory_store) -> None:
        expense = service.create(1, 1, FIELDS)
        with pytest.raises(NotFoundError):
            service.delete(expense.id, 3)
        assert expense.id in memory_store.expenses


class TestNonDraftGuards:
    """update/delete/submit all refuse anything that is not a draft."""

    @pytest.fixture(params=["pending", "approved", "rejected"])
    def non_draft_id(self, request, service: ExpenseService, memory_store) -> int:
        if request.param == "pending":
            expense = service.create(1, 1, FIELDS)
            service.submit(expense.id, 1)
            return expense.id
        return _terminal_expense(service, memory_store, ApprovalDecisionStatus(request.param))

    def test_update(self, service: ExpenseService, non_draft_id: int) -> None:
        with pytest.raises(InvalidStateError):
            service.update(non_draft_id, 1, ExpenseUpdate(category="Meals"))

    def test_delete(self, service: ExpenseService, non_draft_id: int, memory_store) -> None:
        with pytest.raises(InvalidStateError):
            service.delete(non_draft_id, 1)
        assert non_draft_id in memory_store.expenses

    def test_submit(self, service: ExpenseService, non_draft_id: int) -> None:
        with pytest.raises(InvalidStateError):
            service.submit(non_draft_id, 1)

    def test_status_unchanged(self, service: ExpenseService, non_draft_id: int, memory_store) -> None:
        before = memory_store.expenses[non_draft_id]["status"]
        with pytest.raises(InvalidStateError):
            service.submit(non_draft_id, 1)
        assert memory_store.expenses[non_draft_id]["status"] is before


class TestSubmit:
    """Tests for ExpenseService.submit."""

    def test_submit_creates_one_approval_for_manager(self, service: ExpenseService, memory_store) -> None:
        expense = service.create(1, 1, FIELDS)
        submitted, approval = service.submit(expense.id, 1)

        assert submitted.status is ExpenseStatus.PENDING
        assert submitted.submitted_at is not None
        assert approval.approver_id == 2
        assert approval.status is ApprovalDecisionStatus.PENDING
        assert len(memory_store.approvals) == 1

    def test_submit_without_manager_leaves_expense_pending(self, service: ExpenseService, memory_store) -> None:
        """No manager: the expense waits forever and no approval row exists."""
        expense = service.create(3, 1, FIELDS)
        submitted, approval = service.submit(expense.id, 3)

        assert submitted.status is ExpenseStatus.PENDING
        assert approval is None
        assert memory_store.approvals == {}
        assert ApprovalEngine(memory_store).list_pending(2) == []

    def test_submit_rolls_back_when_approval_insert_fails(self, service: ExpenseService, memory_store) -> None:
        expense = service.create(1, 1, FIELDS)
        memory_store.fail_on = "insert_approval"
        with pytest.raises(StoreError):
            service.submit(expense.id, 1)
        assert memory_store.expenses[expense.id]["status"] is ExpenseStatus.DRAFT
        assert memory_store.expenses[expense.id]["submitted_at"] is None


class TestReads:
    """Tests for get and list_expenses."""

    def test_get_returns_approvals(self, service: ExpenseService) -> None:
        expense = service.create(1, 1, FIELDS)
        service.submit(expense.id, 1)
        found, approvals = service.get(expense.id, 1)
        assert found.id == expense.id
        assert [a.approver_id for a in approvals] == [2]

    def test_get_hides_other_users_expense(self, service: ExpenseService) -> None:
        expense = service.create(1, 1, FIELDS)
        with pytest.raises(NotFoundError):
            service.get(expense.id, 2)

    def test_list_paginates_and_filters(self, service: ExpenseService) -> None:
        ids = [service.create(1, 1, FIELDS).id for _ in range(3)]
        service.submit(ids[0], 1)

        page = service.list_expenses(1, page=1, limit=2)
        assert page.total == 3
        assert page.pages == 2
        assert len(page.expenses) == 2

        pending = service.list_expenses(1, status="pending")
        assert [e.id for e in pending.expenses] == [ids[0]]

        assert service.list_expenses(2).total == 0

    def test_list_rejects_unknown_status(self, service: ExpenseService) -> None:
        with pytest.raises(ValidationError):
            service.list_expenses(1, status="paid")

    def test_list_rejects_bad_page(self, service: ExpenseService) -> None:
        with pytest.raises(ValidationError):
            service.list_expenses(1, page=0)
