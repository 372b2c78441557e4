"""Configuration classes for ExpenseFlow."""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SUPPORTED_CURRENCIES = (
    "USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "NZD", "SEK",
    "MXN", "SGD", "HKD", "NOK", "KRW", "TRY", "RUB", "INR", "BRL", "ZAR",
)


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(code.strip().upper() for code in raw.split(",") if code.strip())


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///expenseflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    SUPPORTED_CURRENCIES = _env_list("SUPPORTED_CURRENCIES", DEFAULT_SUPPORTED_CURRENCIES)
    CURRENCY_API_URL = os.environ.get("CURRENCY_API_URL", "https://api.exchangerate-api.com/v4/latest")
    CURRENCY_API_TIMEOUT = int(os.environ.get("CURRENCY_API_TIMEOUT", 5))

    # Receipt uploads for OCR
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    OCR_LANGUAGE = os.environ.get("OCR_LANGUAGE", "eng")

    # Flask-Limiter
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_HEADER_LIMIT = "RateLimit-Limit"
    RATELIMIT_HEADER_REMAINING = "RateLimit-Remaining"
    RATELIMIT_HEADER_RESET = "RateLimit-Reset"
    APPROVAL_RATE_LIMIT = os.environ.get("APPROVAL_RATE_LIMIT", "100 per 15 minutes")

    MAIL_ENABLED = os.environ.get("MAIL_ENABLED", "false").lower() in {"1", "true", "yes"}
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in {"1", "true", "yes"}
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "noreply@expenseflow.local")


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    MAIL_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    LOG_LEVEL = "WARNING"


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
