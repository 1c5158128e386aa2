"""
Base Notification Service

Abstract base class for outbound notification channels (email, SMS, etc.).
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

SIGNATURE = "Best regards,\nThe Karya Team"


class BaseNotifier(ABC):
    """
    Abstract base class for notification services.

    Subclasses should implement send_notification() to handle
    the actual delivery mechanism (email, SMS, etc.).
    """

    @abstractmethod
    def send_notification(self, recipient: str, subject: str, content: str, **kwargs) -> bool:
        """
        Send a notification to a recipient.

        Args:
            recipient: Recipient identifier (email address, phone number, etc.)
            subject: Notification subject/title
            content: Notification body
            **kwargs: Additional channel-specific parameters

        Returns:
            True if notification was sent successfully, False otherwise
        """

    def format_message(self, greeting_name: str | None, *paragraphs: str) -> str:
        """
        Format a plain-text message with greeting and signature.

        Args:
            greeting_name: Name to greet; falls back to "there"
            *paragraphs: Body paragraphs, empty ones are skipped

        Returns:
            Message text
        """
        body = "\n\n".join(p.strip() for p in paragraphs if p and p.strip())
        return f"Hello {greeting_name or 'there'},\n\n{body}\n\n{SIGNATURE}\n"
