"""Currency conversion helpers backed by the exchangerate-api service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Optional

import requests

from expenseflow.config import DEFAULT_SUPPORTED_CURRENCIES
from expenseflow.errors import ExternalServiceError, ValidationError
from expenseflow.schemas import parse_amount, parse_currency_code
from expenseflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)

EXCHANGE_API_URL = "https://api.exchangerate-api.com/v4/latest"


@dataclass(frozen=True)
class Conversion:
    source: str
    target: str
    original_amount: Decimal
    converted_amount: Decimal
    rate: Decimal
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "originalAmount": str(self.original_amount),
            "convertedAmount": str(self.converted_amount),
            "rate": str(self.rate),
            "timestamp": self.timestamp.isoformat(),
        }


class CurrencyService:
    def __init__(
        self,
        api_url: str = EXCHANGE_API_URL,
        timeout: int = 5,
        supported_currencies: Iterable[str] = DEFAULT_SUPPORTED_CURRENCIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.supported_currencies = tuple(supported_currencies)
        self.http = session or requests.Session()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CurrencyService":
        return cls(
            api_url=config.get("CURRENCY_API_URL", EXCHANGE_API_URL),
            timeout=config.get("CURRENCY_API_TIMEOUT", 5),
            supported_currencies=config.get("SUPPORTED_CURRENCIES", DEFAULT_SUPPORTED_CURRENCIES),
        )

    def fetch_exchange_rates(self, base_currency: str) -> Dict[str, Any]:
        """Return ``{"base", "rates", "timestamp"}`` for a supported base currency."""
        base = parse_currency_code(base_currency or "USD", self.supported_currencies)
        payload = self._get(base)
        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise ExternalServiceError("Failed to fetch exchange rates")
        return {
            "base": payload.get("base", base),
            "rates": rates,
            "timestamp": utcnow().isoformat(),
        }

    def convert(self, amount: Any, source_currency: Any, target_currency: Any) -> Conversion:
        value = parse_amount(amount)
        source = self._code(source_currency, "from")
        target = self._code(target_currency, "to")

        if source == target:
            rate = Decimal("1")
        else:
            rates = self._get(source).get("rates") or {}
            raw_rate = rates.get(target)
            if raw_rate is None:
                raise ValidationError(f"Currency {target} not supported")
            rate = Decimal(str(raw_rate))

        converted = (value * rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return Conversion(
            source=source,
            target=target,
            original_amount=value,
            converted_amount=converted,
            rate=rate,
            timestamp=utcnow(),
        )

    @staticmethod
    def _code(value: Any, field: str) -> str:
        if not isinstance(value, str) or len(value.strip()) != 3 or not value.strip().isalpha():
            raise ValidationError(f"'{field}' must be a 3-letter currency code.")
        return value.strip().upper()

    def _get(self, base: str) -> Dict[str, Any]:
        url = f"{self.api_url}/{base}"
        try:
            response = self.http.get(url, timeout=self.timeout)
            if response.status_code == 404:
                raise ValidationError("Invalid currency code")
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.warning("Exchange rate lookup for %s failed: %s", base, exc)
            raise ExternalServiceError("Failed to fetch exchange rates") from exc
        except ValueError as exc:
            logger.warning("Exchange rate response for %s was not JSON", base)
            raise ExternalServiceError("Failed to fetch exchange rates") from exc
