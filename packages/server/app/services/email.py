"""
SMTP email channel.

smtplib is blocking, so each send runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

from app.core.config import Settings
from app.core.errors import DispatchError

log = structlog.get_logger()

SMTP_TIMEOUT_SECONDS = 30


class SmtpEmailSender:
    """Plain-text email over SMTP (STARTTLS on 587, implicit TLS on 465)."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.from_address = settings.email_from

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def _build_message(self, to: str, subject: str, text: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(text, "plain"))
        return msg

    def _send_sync(self, to: str, msg: MIMEMultipart) -> None:
        context = ssl.create_default_context()
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS)
            if self.use_tls:
                server.starttls(context=context)
        try:
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [to], msg.as_string())
        finally:
            server.quit()

    async def send(self, to: str, subject: str, text: str) -> bool:
        """Send one email. Returns False when no SMTP host is configured."""
        if not self.enabled:
            log.warning("email.disabled", to=to, subject=subject)
            return False

        msg = self._build_message(to, subject, text)
        try:
            await asyncio.to_thread(self._send_sync, to, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DispatchError(f"Email to {to} failed: {exc}", channel="email")

        log.info("email.sent", to=to, subject=subject)
        return True
