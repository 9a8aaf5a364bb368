"""SMTP delivery for outbound user notifications."""

from __future__ import annotations

import asyncio
from email.message import EmailMessage
import logging
import smtplib

from .config import Settings

logger = logging.getLogger(__name__)


class SMTPNotifier:
    """Sends plain-text mail through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        sender: str,
        username: str = "",
        password: str = "",
        starttls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._starttls = starttls
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPNotifier":
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            sender=settings.smtp_sender,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout=settings.smtp_timeout_seconds,
        )

    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a message without blocking the event loop."""
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        await asyncio.to_thread(self._deliver, message)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout) as conn:
            if self._starttls:
                conn.starttls()
            if self._username:
                conn.login(self._username, self._password)
            conn.send_message(message)
        logger.debug("mail delivered via %s:%s", self._host, self._port)
