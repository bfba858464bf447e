"""
SMTP email delivery for customer (and optional admin) notifications.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from config import settings
from notifications.base import NotificationKind, Notifier
from notifications.templates import render_message
from utils.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


class EmailNotifier(Notifier):
    """Sends notification emails through an SMTP server."""

    channel = "email"

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "noreply@example.com",
        timeout_seconds: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls) -> "EmailNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.email_from,
            timeout_seconds=settings.notification_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def build_message(
        self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]
    ) -> MIMEMultipart:
        rendered = render_message(kind, payload)
        msg = MIMEMultipart("alternative")
        msg["Subject"] = rendered.subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.attach(MIMEText(rendered.text, "plain", "utf-8"))
        msg.attach(MIMEText(rendered.html, "html", "utf-8"))
        return msg

    def _send(self, msg: MIMEMultipart) -> None:
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)

        with server:
            if self.port != 465:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def notify(
        self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]
    ) -> None:
        if not self.is_configured:
            raise NotificationFailure("Email service is not configured")
        if not recipient:
            raise NotificationFailure("No recipient email provided")

        msg = self.build_message(recipient, kind, payload)
        try:
            await asyncio.to_thread(self._send, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationFailure(f"Failed to send email to {recipient}: {e}") from e

        logger.info(f"Email sent to {recipient}: {msg['Subject']}")
