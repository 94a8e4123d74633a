"""Outgoing email for report delivery."""

from __future__ import annotations

import asyncio
import logging
import os
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

from dotenv import load_dotenv

from .errors import NonRetriableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mime_type: str = "application/pdf"


class Mailer(ABC):
    """Sends one email with optional attachments."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None: ...


@dataclass(frozen=True)
class SMTPSettings:
    host: str
    port: int = 587
    user: str | None = None
    password: str | None = None
    sender: str | None = None

    @classmethod
    def from_env(cls) -> SMTPSettings:
        load_dotenv()
        host = os.getenv("SMTP_HOST")
        if not host:
            raise ValueError("SMTP_HOST is not set")
        user = os.getenv("SMTP_USER") or None
        return cls(
            host=host,
            port=int(os.getenv("SMTP_PORT") or 587),
            user=user,
            password=os.getenv("SMTP_PASS") or None,
            sender=os.getenv("SMTP_FROM") or user,
        )


class SMTPMailer(Mailer):
    """Mailer over smtplib; port 465 uses implicit TLS, other ports STARTTLS when offered."""

    def __init__(self, settings: SMTPSettings, timeout: float = 30.0) -> None:
        self.settings = settings
        self.timeout = timeout

    def _build(self, to: str, subject: str, body: str, attachments: list[Attachment]) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.sender or self.settings.user or f"reports@{self.settings.host}"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        for a in attachments:
            maintype, _, subtype = a.mime_type.partition("/")
            msg.add_attachment(a.content, maintype=maintype, subtype=subtype, filename=a.filename)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        s = self.settings
        if s.port == 465:
            client: smtplib.SMTP = smtplib.SMTP_SSL(s.host, s.port, timeout=self.timeout)
        else:
            client = smtplib.SMTP(s.host, s.port, timeout=self.timeout)
        with client:
            if s.port != 465:
                client.ehlo()
                # Plain relays (port 25, local catchers) do not offer STARTTLS.
                if client.has_extn("starttls"):
                    client.starttls()
                    client.ehlo()
            if s.user and s.password:
                client.login(s.user, s.password)
            client.send_message(msg)

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        msg = self._build(to, subject, body, attachments or [])
        await asyncio.to_thread(self._send_sync, msg)
        logger.info("Email %r sent to %s", subject, to)


class DisabledMailer(Mailer):
    """Used when SMTP is not configured; every send fails the run."""

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        raise NonRetriableError("Email delivery is not configured (set SMTP_HOST)")
