"""Email notifications for the approval workflow."""
from __future__ import annotations

import logging
from typing import Optional

from flask import current_app
from flask_mail import Mail, Message

from expenseflow.models import Expense, ExpenseApproval, User

logger = logging.getLogger(__name__)


class EmailService:
    """Sends approval workflow emails through Flask-Mail."""

    def __init__(self, mail: Optional[Mail] = None):
        self.mail = mail

    @property
    def enabled(self) -> bool:
        return bool(self.mail) and current_app.config.get("MAIL_ENABLED", False)

    def notify_approval_requested(self, approver: User, submitter: User, expense: Expense) -> bool:
        """Tell the approver a new expense waits for them."""
        subject = f"ExpenseFlow - {submitter.full_name} submitted an expense"
        body = (
            f"Hi {approver.first_name},\n\n"
            f"{submitter.full_name} submitted an expense for your approval:\n"
            f"  {expense.category}: {expense.amount} {expense.currency_code} "
            f"on {expense.expense_date.isoformat()}\n"
            f"  {expense.description or ''}\n\n"
            "Open your pending approvals to review it.\n"
        )
        return self._send_email(approver.email, subject, body)

    def notify_expense_decided(self, submitter: User, expense: Expense, approval: ExpenseApproval) -> bool:
        """Tell the submitter their expense was approved or rejected."""
        decision = approval.status.value
        subject = f"ExpenseFlow - Your expense was {decision}"
        body = (
            f"Hi {submitter.first_name},\n\n"
            f"Your {expense.category} expense of {expense.amount} {expense.currency_code} "
            f"was {decision}.\n"
        )
        if approval.comment:
            body += f"\nComment: {approval.comment}\n"
        return self._send_email(submitter.email, subject, body)

    def _send_email(self, to_email: str, subject: str, text_body: str) -> bool:
        if not self.enabled:
            logger.debug("Mail disabled; skipping '%s' to %s", subject, to_email)
            return False
        try:
            msg = Message(
                subject=subject,
                sender=current_app.config.get("MAIL_DEFAULT_SENDER"),
                recipients=[to_email],
                body=text_body,
            )
            self.mail.send(msg)
            logger.info("Email sent successfully to %s", to_email)
            return True
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False


email_service = EmailService()


def init_email_service(mail: Mail) -> None:
    """Bind the shared email service to the app's Mail extension."""
    email_service.mail = mail
