"""SMTP mail delivery.

smtplib is blocking, so each send runs in a worker thread to keep the event
loop free.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from questbot.config import MailSettings

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Sends HTML summaries over SMTP with STARTTLS and login."""

    def __init__(self, config: MailSettings, timeout: float = 30.0) -> None:
        self._config = config
        self._timeout = timeout

    async def send_summary(self, recipients: list[str], subject: str, body: str) -> bool:
        """Send an HTML mail to all recipients.

        Returns True on success, False on failure.
        """
        try:
            await asyncio.to_thread(self._send_sync, recipients, subject, body)
        except Exception:
            logger.exception("Failed to send mail %r to %s", subject, ", ".join(recipients))
            return False
        logger.info("Mail %r sent to: %s", subject, ", ".join(recipients))
        return True

    def _build(self, recipients: list[str], subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._config.email_user
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(body, "html", "utf-8"))
        return msg

    def _send_sync(self, recipients: list[str], subject: str, body: str) -> None:
        msg = self._build(recipients, subject, body)
        context = ssl.create_default_context()
        with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=self._timeout) as server:
            server.starttls(context=context)
            server.login(self._config.email_user, self._config.email_pass)
            server.sendmail(self._config.email_user, recipients, msg.as_string())
