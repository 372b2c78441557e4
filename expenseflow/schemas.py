"""Typed request payloads for expense creation and partial updates.

Both payloads accept snake_case keys and the camelCase spelling used by the
dashboard (``currencyCode``, ``expenseDate``). Unknown keys are rejected
rather than dropped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional

from expenseflow.config import DEFAULT_SUPPORTED_CURRENCIES
from expenseflow.errors import ValidationError

DEFAULT_CURRENCY = "USD"
MAX_AMOUNT = Decimal("9999999999.99")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")

FIELD_ALIASES = {
    "currencyCode": "currency_code",
    "currency": "currency_code",
    "expenseDate": "expense_date",
    "date": "expense_date",
}


def _normalize_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in payload.items():
        name = FIELD_ALIASES.get(key, key)
        if name in normalized:
            raise ValidationError(f"Field '{name}' given more than once.")
        normalized[name] = value
    return normalized


def _reject_unknown(payload: Mapping[str, Any], allowed: Iterable[str]) -> None:
    unknown = set(payload) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")


def parse_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("amount is required and must be a number.")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a number.") from None
    if not amount.is_finite():
        raise ValidationError("amount must be a number.")
    if amount.adjusted() > MAX_AMOUNT.adjusted():
        raise ValidationError("amount is too large.")
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValidationError("amount must be a positive number.")
    if amount > MAX_AMOUNT:
        raise ValidationError("amount is too large.")
    return amount


def parse_currency_code(value: Any, supported: Iterable[str] = DEFAULT_SUPPORTED_CURRENCIES) -> str:
    if not isinstance(value, str):
        raise ValidationError("currency_code must be a 3-letter code.")
    code = value.strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise ValidationError("currency_code must be a 3-letter code.")
    if code not in set(supported):
        raise ValidationError(f"Currency {code} not supported.")
    return code


def parse_category(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("category is required.")
    category = value.strip()
    if len(category) > 120:
        raise ValidationError("category must be at most 120 characters.")
    return category


def parse_expense_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("expense_date is required.")
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError("Invalid expense_date format. Use YYYY-MM-DD.") from None


def parse_description(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("description must be a string.")
    return value.strip()


@dataclass(frozen=True)
class ExpenseDraft:
    """Validated fields for a new expense."""

    amount: Decimal
    currency_code: str
    category: str
    expense_date: date
    description: str = ""

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        supported_currencies: Iterable[str] = DEFAULT_SUPPORTED_CURRENCIES,
    ) -> "ExpenseDraft":
        data = _normalize_keys(payload)
        _reject_unknown(data, (f.name for f in fields(cls)))

        missing = {"amount", "category", "expense_date"} - data.keys()
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(sorted(missing))}")

        return cls(
            amount=parse_amount(data["amount"]),
            currency_code=parse_currency_code(
                data.get("currency_code", DEFAULT_CURRENCY), supported_currencies
            ),
            category=parse_category(data["category"]),
            expense_date=parse_expense_date(data["expense_date"]),
            description=parse_description(data.get("description")),
        )


@dataclass(frozen=True)
class ExpenseUpdate:
    """Partial update of the fields a draft expense allows to change.

    ``None`` means "leave unchanged".
    """

    description: Optional[str] = None
    amount: Optional[Decimal] = None
    currency_code: Optional[str] = None
    category: Optional[str] = None
    expense_date: Optional[date] = None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        supported_currencies: Iterable[str] = DEFAULT_SUPPORTED_CURRENCIES,
    ) -> "ExpenseUpdate":
        data = _normalize_keys(payload)
        _reject_unknown(data, (f.name for f in fields(cls)))
        if not data:
            raise ValidationError("No valid fields to update")

        parsers = {
            "description": parse_description,
            "amount": parse_amount,
            "currency_code": lambda value: parse_currency_code(value, supported_currencies),
            "category": parse_category,
            "expense_date": parse_expense_date,
        }
        return cls(**{name: parsers[name](value) for name, value in data.items()})

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
