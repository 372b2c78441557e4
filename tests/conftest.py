"""Shared test fixtures and configuration.

Fixtures never leave an application context pushed: the test client would
reuse it for every request, and Flask-Login caches the current user on ``g``,
so two logged-in clients would see each other's identity. Tests that need the
database open their own ``app.app_context()``.
"""

from __future__ import annotations

import os
from typing import Callable, Iterator, Optional

import pytest
from flask import Flask
from flask.testing import FlaskClient

os.environ.setdefault("FLASK_CONFIG", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from expenseflow import create_app, db
from expenseflow.models import Company, User, UserRole
from expenseflow.services.store import SQLAlchemyStore

from fakes import InMemoryStore

PASSWORD = "testpass123"

EXPENSE_PAYLOAD = {
    "description": "Test expense for approval",
    "category": "Travel",
    "expenseDate": "2025-01-15",
    "amount": 500.00,
    "currencyCode": "USD",
}


@pytest.fixture
def app() -> Iterator[Flask]:
    """App bound to a fresh in-memory SQLite database."""
    app = create_app("testing")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def company(app: Flask) -> Company:
    with app.app_context():
        company = Company(name="Test Company Approvals", country="US", currency_code="USD")
        db.session.add(company)
        db.session.commit()
        db.session.refresh(company)
        return company


@pytest.fixture
def make_user(app: Flask, company: Company) -> Callable[..., User]:
    """Factory creating users in the test company."""

    def _make(
        email: str,
        role: UserRole = UserRole.EMPLOYEE,
        manager: Optional[User] = None,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> User:
        with app.app_context():
            user = User(
                first_name=first_name,
                last_name=last_name,
                email=email,
                role=role,
                company_id=company.id,
                manager_id=manager.id if manager else None,
            )
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            db.session.refresh(user)
            return user

    return _make


@pytest.fixture
def manager(make_user) -> User:
    return make_user("testmanager@example.com", role=UserRole.MANAGER, last_name="Manager")


@pytest.fixture
def employee(make_user, manager: User) -> User:
    return make_user("testemployee@example.com", manager=manager, last_name="Employee")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin@example.com", role=UserRole.ADMIN, last_name="Admin")


@pytest.fixture
def login(app: Flask) -> Callable[[User], FlaskClient]:
    """Return a fresh test client with ``user`` logged in."""

    def _login(user: User) -> FlaskClient:
        client = app.test_client()
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client

    return _login


@pytest.fixture
def sql_store(app: Flask) -> Iterator[SQLAlchemyStore]:
    with app.app_context():
        yield SQLAlchemyStore(db.session)


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Employee 1 reports to manager 2; user 3 has no manager; user 4 is another approver."""
    store = InMemoryStore()
    store.add_user(2, first_name="Mia", last_name="Manager")
    store.add_user(1, manager_id=2, first_name="Eli", last_name="Employee")
    store.add_user(3, first_name="Nora", last_name="Nomanager")
    store.add_user(4, first_name="Otto", last_name="Approver")
    return store
