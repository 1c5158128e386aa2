"""
Email Notification Service

Outbound mail for lifecycle events (interview scheduled or moved, hire
confirmed, project created, payment received). Delivery is best-effort.
"""

from __future__ import annotations

import logging
import os
import smtplib
from email.message import EmailMessage

from dotenv import load_dotenv

from .base_notifier import BaseNotifier

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_SENDER = "noreply@karya.local"


class EmailNotifier(BaseNotifier):
    """
    Plain-text SMTP mailer.

    ``send_notification`` reports failure as False; it never raises into the
    state transition that triggered it.
    """

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            smtp_host: SMTP server hostname; SMTP_HOST when omitted. Mail is
                disabled without one.
            smtp_port: SMTP_PORT, else 587
            smtp_user: SMTP_USER
            smtp_password: SMTP_PASSWORD
            smtp_use_tls: Upgrade the connection with STARTTLS
            from_email: SMTP_FROM, then the SMTP user, then DEFAULT_SENDER
            timeout: Socket timeout; EXTERNAL_TIMEOUT_SECONDS, else 15
        """
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = smtp_user or os.getenv("SMTP_USER")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD")
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or os.getenv("SMTP_FROM") or self.smtp_user or DEFAULT_SENDER
        self.timeout = timeout or float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "15"))

        if not self.enabled:
            logger.warning("SMTP_HOST not configured - lifecycle emails are disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)

    def build_message(
        self, recipient: str, subject: str, content: str, reply_to: str | None = None
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_email
        message["To"] = recipient
        message["Subject"] = subject
        if reply_to:
            message["Reply-To"] = reply_to
        message.set_content(content)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.smtp_use_tls:
                server.starttls()
            if self.smtp_user and self.smtp_password:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(message)

    def send_notification(self, recipient: str, subject: str, content: str, **kwargs) -> bool:
        """
        Send one lifecycle email.

        Args:
            recipient: Email address of the hirer or freelancer
            subject: Subject line
            content: Plain-text body, usually from ``format_message``
            **kwargs: ``reply_to`` sets a Reply-To header (e.g. the hirer's
                address on interview invitations)

        Returns:
            True if the SMTP server accepted the message
        """
        if not self.enabled:
            logger.debug(f"Skipping email '{subject}' - SMTP not configured")
            return False
        if not recipient:
            logger.warning(f"Skipping email '{subject}' - recipient has no email address")
            return False

        try:
            self._deliver(self.build_message(recipient, subject, content, kwargs.get("reply_to")))
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to email {recipient} ('{subject}'): {e}", exc_info=True)
            return False

        logger.info(f"Emailed {recipient}: {subject}")
        return True
