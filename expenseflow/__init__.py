"""Application factory and extension initialization for ExpenseFlow."""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException

from expenseflow.config import config_by_name

# Global extension instances -------------------------------------------------

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
mail = Mail()
limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def create_app(config_name: Optional[str] = None) -> Flask:
    """Flask application factory."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    config_name = config_name or os.getenv("FLASK_CONFIG", "development")
    config_class = config_by_name.get(config_name.lower())
    if config_class is None:
        raise ValueError(f"Unknown Flask configuration '{config_name}'")

    app.config.from_object(config_class)

    # Ensure instance folder exists for SQLite DBs
    os.makedirs(app.instance_path, exist_ok=True)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    mail.init_app(app)
    limiter.init_app(app)

    from expenseflow.services.email_service import init_email_service
    init_email_service(mail)

    # Register blueprints
    from expenseflow.admin import admin_bp
    from expenseflow.approvals import approvals_bp
    from expenseflow.auth import auth_bp
    from expenseflow.currency import currency_bp
    from expenseflow.expenses import expenses_bp
    from expenseflow.ocr import ocr_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(approvals_bp)
    app.register_blueprint(currency_bp)
    app.register_blueprint(ocr_bp)

    _register_error_handlers(app)

    # Import all models to ensure they are registered with SQLAlchemy
    from expenseflow.models import AuditLog, Company, Expense, ExpenseApproval, User  # noqa: F401

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[User]:
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from expenseflow.utils.helpers import json_response
        return json_response({"error": "Authentication required."}, status=401)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.cli.command("init-db")
    def init_db() -> None:
        """Create all tables without running migrations."""
        db.create_all()
        logger.info("Database tables created")

    @app.shell_context_processor
    def shell_context():
        return {"db": db, "User": User, "Expense": Expense}

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    package_logger = logging.getLogger("expenseflow")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        package_logger.addHandler(handler)


def _register_error_handlers(app: Flask) -> None:
    from expenseflow.errors import ExpenseFlowError, StoreError
    from expenseflow.utils.helpers import json_response

    @app.errorhandler(ExpenseFlowError)
    def handle_expenseflow_error(error: ExpenseFlowError):
        if isinstance(error, StoreError):
            app.logger.error("Store failure: %s", error.message)
        return json_response(error.to_dict(), status=error.status_code)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error: CSRFError):
        return json_response({"error": error.description}, status=400)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return json_response({"error": error.description}, status=error.code or 500)
