# utils/email_service.py
import aiosmtplib
from email.message import EmailMessage
from email.utils import make_msgid
from datetime import date
from decimal import Decimal
from typing import Sequence
from jinja2 import Environment, FileSystemLoader, select_autoescape
import logging
import os

from config.settings import settings
from schemas.expenses import ExpenseSummary
from schemas.notifications import NotificationResult, TimeWindow

logger = logging.getLogger(__name__)


def _percentage(spent: Decimal, limit: Decimal | None) -> float:
    if not limit:
        return 0.0
    return float(Decimal(spent) / Decimal(limit) * 100)


class ExpenseMailer:
    """
    Renders notification emails with Jinja2 and delivers them over SMTP.

    Send methods never raise for delivery problems; they return a
    NotificationResult and leave retry policy to the caller.
    """

    def __init__(self, config=settings, template_dir: str | None = None):
        self.config = config
        self.template_dir = template_dir or config.template_dir
        self._env: Environment | None = None

    @property
    def env(self) -> Environment:
        if self._env is None:
            if not os.path.isdir(self.template_dir):
                raise FileNotFoundError(f"Template directory not found: {self.template_dir}")
            self._env = Environment(
                loader=FileSystemLoader(self.template_dir),
                autoescape=select_autoescape(["html"]),
            )
        return self._env

    def render(self, template_name: str, **context) -> str:
        template = self.env.get_template(template_name)
        return template.render(app_name=self.config.APP_NAME, **context)

    async def send_email_async(self, to_email: str, subject: str, body: str) -> NotificationResult:
        if not self.config.ENABLE_EMAIL_NOTIFICATIONS:
            logger.warning(f"Email notifications disabled, not sending '{subject}' to {to_email}")
            return NotificationResult(success=False, error="Email notifications are disabled")

        message = EmailMessage()
        message["From"] = f"{self.config.SMTP_FROM_NAME} <{self.config.SMTP_FROM_EMAIL}>"
        message["To"] = to_email
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(body, subtype="html")

        logger.info(f"Sending email to {to_email}")
        try:
            errors, response = await aiosmtplib.send(
                message,
                hostname=self.config.SMTP_HOST,
                port=self.config.SMTP_PORT,
                username=self.config.SMTP_USERNAME,
                password=self.config.SMTP_PASSWORD,
                use_tls=False,
                start_tls=True,
                timeout=self.config.SMTP_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}. Error: {str(e)}")
            return NotificationResult(success=False, error=str(e))

        if errors:
            logger.error(f"Recipient rejected for {to_email}: {errors}")
            return NotificationResult(success=False, error=str(errors))
        logger.info(f"Email sent to {to_email}. Result: {response}")
        return NotificationResult(success=True, message_id=message.get("Message-ID"))

    async def send_daily_summary(
        self,
        user,
        expenses: Sequence[ExpenseSummary],
        total: Decimal,
        day: date,
    ) -> NotificationResult:
        body = self.render(
            "daily_summary_email.html",
            user_name=user.username,
            expenses=expenses,
            total=total,
            day=day,
        )
        subject = f"Daily Expense Summary - {day.strftime('%m/%d/%Y')}"
        return await self.send_email_async(user.email, subject, body)

    async def send_weekly_summary(
        self,
        user,
        expenses: Sequence[ExpenseSummary],
        total: Decimal,
        limit: Decimal | None,
        window: TimeWindow,
    ) -> NotificationResult:
        body = self.render(
            "weekly_summary_email.html",
            user_name=user.username,
            expenses=expenses,
            total=total,
            limit=limit,
            percentage_used=_percentage(total, limit),
            start=window.start,
            end=window.end,
        )
        subject = f"Weekly Expense Summary - {total:.2f} spent"
        return await self.send_email_async(user.email, subject, body)

    async def send_weekly_limit_alert(self, user, spent: Decimal, limit: Decimal) -> NotificationResult:
        percentage_used = _percentage(spent, limit)
        over_budget = spent > limit
        body = self.render(
            "weekly_limit_alert_email.html",
            user_name=user.username,
            spent=spent,
            limit=limit,
            percentage_used=percentage_used,
            over_budget=over_budget,
        )
        if over_budget:
            subject = f"Weekly Budget Exceeded - {spent:.2f} spent"
        else:
            subject = f"Weekly Budget Alert - {percentage_used:.1f}% used"
        return await self.send_email_async(user.email, subject, body)
