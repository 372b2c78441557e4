"""HTTP tests for /api/expenses."""

from __future__ import annotations

from conftest import EXPENSE_PAYLOAD
from expenseflow import db
from expenseflow.models import Expense, ExpenseApproval, ExpenseStatus


def _create(client, **overrides):
    response = client.post("/api/expenses", json={**EXPENSE_PAYLOAD, **overrides})
    assert response.status_code == 201, response.get_json()
    return response.get_json()["expense"]


class TestExpenseCrud:
    """Draft creation, reading, editing and deletion."""

    def test_requires_login(self, app) -> None:
        response = app.test_client().get("/api/expenses")
        assert response.status_code == 401
        assert response.get_json() == {"error": "Authentication required."}

    def test_create_returns_draft(self, login, employee) -> None:
        client = login(employee)
        response = client.post("/api/expenses", json=EXPENSE_PAYLOAD)

        assert response.status_code == 201
        body = response.get_json()
        assert body["message"] == "Expense created successfully"
        assert body["expense"]["status"] == "draft"
        assert body["expense"]["amount"] == "500.00"
        assert body["expense"]["currency_code"] == "USD"
        assert body["expense"]["submitter_id"] == employee.id
        assert body["expense"]["company_id"] == employee.company_id

    def test_create_validation_error(self, login, employee) -> None:
        client = login(employee)
        response = client.post("/api/expenses", json={**EXPENSE_PAYLOAD, "amount": -10})
        assert response.status_code == 400
        assert "amount" in response.get_json()["error"]

    def test_create_rejects_huge_amount(self, login, employee) -> None:
        response = login(employee).post("/api/expenses", json={**EXPENSE_PAYLOAD, "amount": 1e30})
        assert response.status_code == 400
        assert response.get_json() == {"error": "amount is too large."}

    def test_create_rejects_non_object_body(self, login, employee) -> None:
        client = login(employee)
        response = client.post("/api/expenses", json=["not", "an", "object"])
        assert response.status_code == 400

    def test_get_includes_approvals(self, login, employee) -> None:
        client = login(employee)
        expense = _create(client)

        response = client.get(f"/api/expenses/{expense['id']}")
        assert response.status_code == 200
        assert response.get_json() == {"expense": expense, "approvals": []}

    def test_other_users_expense_is_hidden(self, login, employee, manager) -> None:
        expense = _create(login(employee))
        response = login(manager).get(f"/api/expenses/{expense['id']}")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Expense not found"}

    def test_update_draft(self, login, employee) -> None:
        client = login(employee)
        expense = _create(client)

        response = client.put(f"/api/expenses/{expense['id']}", json={"amount": 75, "category": "Meals"})
        assert response.status_code == 200
        updated = response.get_json()["expense"]
        assert updated["amount"] == "75.00"
        assert updated["category"] == "Meals"
        assert updated["description"] == EXPENSE_PAYLOAD["description"]

    def test_update_empty_body(self, login, employee) -> None:
        client = login(employee)
        expense = _create(client)
        response = client.put(f"/api/expenses/{expense['id']}", json={})
        assert response.status_code == 400
        assert response.get_json() == {"error": "No valid fields to update"}

    def test_delete_draft(self, app, login, employee) -> None:
        client = login(employee)
        expense = _create(client)

        response = client.delete(f"/api/expenses/{expense['id']}")
        assert response.status_code == 200
        with app.app_context():
            assert db.session.get(Expense, expense["id"]) is None

    def test_list_is_paginated(self, login, employee) -> None:
        client = login(employee)
        for _ in range(3):
            _create(client)

        body = client.get("/api/expenses?page=2&limit=2").get_json()
        assert len(body["expenses"]) == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    def test_list_unknown_status(self, login, employee) -> None:
        response = login(employee).get("/api/expenses?status=paid")
        assert response.status_code == 400


class TestSubmit:
    """POST /api/expenses/<id>/submit."""

    def test_submit_routes_to_manager(self, app, login, employee, manager) -> None:
        client = login(employee)
        expense = _create(client)

        response = client.post(f"/api/expenses/{expense['id']}/submit")
        assert response.status_code == 200
        body = response.get_json()
        assert body["expense"]["status"] == "pending"
        assert body["expense"]["submitted_at"] is not None
        assert body["approval"]["approver_id"] == manager.id
        assert body["approval"]["status"] == "pending"

        with app.app_context():
            assert ExpenseApproval.query.filter_by(expense_id=expense["id"]).count() == 1

    def test_submitted_expense_is_frozen(self, login, employee) -> None:
        client = login(employee)
        expense = _create(client)
        client.post(f"/api/expenses/{expense['id']}/submit")

        assert client.put(f"/api/expenses/{expense['id']}", json={"amount": 1}).get_json() == {
            "error": "Can only update draft expenses"
        }
        assert client.delete(f"/api/expenses/{expense['id']}").get_json() == {
            "error": "Can only delete draft expenses"
        }
        resubmit = client.post(f"/api/expenses/{expense['id']}/submit")
        assert resubmit.status_code == 400
        assert resubmit.get_json() == {"error": "Expense is not in draft status"}

    def test_submit_without_manager(self, app, login, make_user) -> None:
        """The expense goes pending even though nobody can approve it."""
        loner = make_user("loner@example.com")
        client = login(loner)
        expense = _create(client)

        body = client.post(f"/api/expenses/{expense['id']}/submit").get_json()
        assert body["expense"]["status"] == "pending"
        assert body["approval"] is None

        with app.app_context():
            assert db.session.get(Expense, expense["id"]).status is ExpenseStatus.PENDING
            assert ExpenseApproval.query.count() == 0
