from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from ..config import Settings
from ..errors.exceptions import NotificationFailed

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a message; raises NotificationFailed when delivery fails."""


class SmtpNotifier:
    """Plain-text mail over SMTP (STARTTLS), sent from a worker thread."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        timeout: int = 15,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._user = user
        self._password = password
        self._starttls = starttls
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpNotifier":
        if not settings.mail_sender:
            raise RuntimeError("EMAIL_FROM or SMTP_USER must be set when NOTIFIER=smtp")
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.mail_sender,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            starttls=settings.SMTP_STARTTLS,
            timeout=settings.SMTP_TIMEOUT_SEC,
        )

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.set_content(body)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as conn:
            conn.ehlo()
            if self._starttls:
                conn.starttls()
                conn.ehlo()
            if self._user and self._password:
                conn.login(self._user, self._password)
            conn.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self._build(to, subject, body)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP send failed: %s", exc)
            raise NotificationFailed(cause=exc) from exc
        logger.info("mail sent", extra={"extra": f"to={to} subject={subject!r}"})


class ConsoleNotifier:
    """DEV sender: log the message instead of mailing it."""

    async def send(self, to: str, subject: str, body: str) -> None:
        # body carries the code; keep it out of INFO logs
        logger.debug("[DEV] mail to %s: %s | %s", to, subject, body)


def build_notifier(settings: Settings) -> Notifier:
    if settings.NOTIFIER == "console":
        if settings.ENV == "prod":
            raise RuntimeError("NOTIFIER=console is for dev/test only; configure SMTP for ENV=prod")
        return ConsoleNotifier()
    return SmtpNotifier.from_settings(settings)
