"""SMTP notifications about account deletion."""

import logging
import smtplib
from datetime import datetime, timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)

SENDER_NAME = "Wireline Inventory System"
SIGNATURE = "Best regards,\nWireline Inventory Management System"


class MailError(Exception):
    """Raised when a message could not be handed to the SMTP server."""


class Mailer:
    """Send plain-text e-mails through an SMTP relay using STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        if not password:
            logger.warning("SMTP password not configured; e-mail delivery will fail")

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_user or settings.mail_from,
            password=settings.smtp_password,
        )

    def send(self, to: str, subject: str, body: str) -> None:
        if not self.password:
            raise MailError("SMTP password not configured")

        msg = MIMEMultipart()
        msg["From"] = f'"{SENDER_NAME}" <{self.sender}>'
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg, to_addrs=[to])
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("failed to send mail to %s: %s", to, exc)
            raise MailError(f"Failed to send email: {exc}") from exc
        logger.info("sent mail to %s subject=%r", to, subject)

    def send_deletion_warning(
        self, to: str, full_name: str, scheduled_at: datetime, grace_days: int
    ) -> None:
        final_date = scheduled_at + timedelta(days=grace_days)
        self.send(
            to,
            "Account Scheduled for Deletion",
            f"Dear {full_name},\n\n"
            "Your account in the Wireline Inventory Management System has been "
            f"scheduled for deletion. It will be permanently deleted on "
            f"{final_date:%B %d, %Y}.\n\n"
            "If you believe this is a mistake, please contact the system "
            f"administrator before that date.\n\n{SIGNATURE}",
        )

    def send_deletion_reminder(self, to: str, full_name: str, days_remaining: int) -> None:
        self.send(
            to,
            f"Reminder: Account Deletion in {days_remaining} Days",
            f"Dear {full_name},\n\n"
            "This is a reminder that your account in the Wireline Inventory "
            f"Management System is scheduled for deletion in {days_remaining} "
            "day(s).\n\n"
            "If you need to retain access to your account, please contact the "
            f"system administrator immediately.\n\n{SIGNATURE}",
        )

    def send_account_restored(self, to: str, full_name: str) -> None:
        self.send(
            to,
            "Account Restored",
            f"Dear {full_name},\n\n"
            "Your account in the Wireline Inventory Management System has been "
            "restored and is active again. No further action is needed.\n\n"
            f"{SIGNATURE}",
        )
