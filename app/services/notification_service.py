"""Notification service for sending appointment emails."""

import asyncio
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Protocol

import structlog

from app.config import Settings, settings

logger = structlog.get_logger(__name__)


class NotificationSink(Protocol):
    """Delivers a plain-text email. Implementations may raise on failure."""

    async def send_email(self, address: str, subject: str, body: str) -> None: ...


class EmailNotificationService:
    """
    Email delivery over SMTP.

    When no SMTP host is configured the message is only logged, which keeps
    development and test environments free of outbound mail.
    """

    def __init__(self, config: Settings | None = None):
        """Initialize service with SMTP settings."""
        self.config = config or settings

    async def send_email(self, address: str, subject: str, body: str) -> None:
        """
        Send one email.

        Args:
            address: Recipient email address
            subject: Subject line
            body: Plain-text body

        Raises:
            smtplib.SMTPException: If the SMTP server rejects the message
            OSError: If the SMTP server cannot be reached
        """
        if not address:
            raise ValueError("Recipient address is required")

        if not self.config.smtp_host:
            logger.info("email_logged", to=address, subject=subject)
            return

        await asyncio.to_thread(self._send_via_smtp, address, subject, body)
        logger.info("email_sent", to=address, subject=subject)

    def _send_via_smtp(self, address: str, subject: str, body: str) -> None:
        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = self.config.email_from_address
        message["To"] = address

        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as server:
            if self.config.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.config.smtp_username and self.config.smtp_password:
                server.login(self.config.smtp_username, self.config.smtp_password)
            server.sendmail(self.config.email_from_address, [address], message.as_string())
