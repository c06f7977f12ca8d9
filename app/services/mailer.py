"""Outbound credential emails."""

import logging
import smtplib
from email.message import EmailMessage

from app.core.config import settings

logger = logging.getLogger(__name__)


STUDENT_TEMPLATE = """Dear {name},

Your registration has been completed successfully. Here are your login credentials:

    Student ID: {login_id}
    Password:   {password}

Please keep these credentials safe. You will use your Student ID to login.

Best regards,
Examin Team
"""

ADMIN_TEMPLATE = """Dear {name},

An admin account has been created for you in the Examin system. Here are your login credentials:

    Admin ID: {login_id}
    Password: {password}

As an admin, you can create and manage exams, view student submissions
and monitor student performance.

Best regards,
Examin Team
"""


class Mailer:
    """Best-effort SMTP delivery; failures are logged, never raised."""

    def __init__(self, host: str | None = None, port: int | None = None):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT

    @property
    def configured(self) -> bool:
        return bool(settings.SMTP_USER)

    def send(self, to: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.warning(f"SMTP not configured; skipping email to {to}")
            return False

        message = EmailMessage()
        message["From"] = f'"{settings.MAIL_FROM_NAME}" <{settings.SMTP_USER}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                smtp.starttls()
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError):
            logger.exception(f"Failed to send email to {to}")
            return False

        logger.info(f"Email sent to {to}")
        return True

    def send_student_credentials(self, email: str, name: str, login_id: str, password: str) -> bool:
        return self.send(
            email,
            "Your Examin Registration Details",
            STUDENT_TEMPLATE.format(name=name, login_id=login_id, password=password),
        )

    def send_admin_credentials(self, email: str, name: str, login_id: str, password: str) -> bool:
        return self.send(
            email,
            "Your Examin Admin Account Details",
            ADMIN_TEMPLATE.format(name=name, login_id=login_id, password=password),
        )
