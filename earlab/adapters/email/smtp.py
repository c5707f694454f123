"""SMTP email transport built on smtplib.

Sending blocks on network I/O, so it runs in a worker thread when called from
the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from earlab.adapters.email.base import AbstractEmailSender, OutgoingEmail
from earlab.core.config import SmtpSettings
from earlab.core.logging import fingerprint

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SmtpEmailSender(AbstractEmailSender):
    """Send mail through an SMTP relay.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS when the
    server offers it. If host, user or password is missing the sender stays
    disabled: ``send`` logs and returns False instead of raising.
    """

    def __init__(self, smtp_settings: SmtpSettings) -> None:
        self._settings = smtp_settings
        self.enabled = bool(smtp_settings.host and smtp_settings.user and smtp_settings.password)
        if not self.enabled:
            logger.warning(
                "email.smtp_not_configured",
                extra={"host_set": bool(smtp_settings.host), "user_set": bool(smtp_settings.user)},
            )

    def build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = email.sender or self._settings.from_address
        message["To"] = email.to
        message["Subject"] = email.subject
        if email.reply_to:
            message["Reply-To"] = email.reply_to
        message.set_content(email.text)
        if email.html:
            message.add_alternative(email.html, subtype="html")
        return message

    def _connect(self) -> smtplib.SMTP:
        cfg = self._settings
        if cfg.port == IMPLICIT_TLS_PORT:
            return smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout_seconds)
        return smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds)

    def _send_sync(self, message: EmailMessage) -> None:
        with self._connect() as server:
            server.ehlo()
            if self._settings.port != IMPLICIT_TLS_PORT and server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(self._settings.user, self._settings.password)
            server.send_message(message)

    async def send(self, email: OutgoingEmail) -> bool:
        recipient_hash = fingerprint(email.to)
        if not self.enabled:
            logger.info("email.skipped", extra={"recipient_hash": recipient_hash, "reason": "smtp_not_configured"})
            return False

        message = self.build_message(email)
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "email.send_failed",
                extra={
                    "recipient_hash": recipient_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return False

        logger.info("email.sent", extra={"recipient_hash": recipient_hash, "subject": email.subject})
        return True
