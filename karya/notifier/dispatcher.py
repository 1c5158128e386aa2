"""
Notification Dispatcher

Persists a notification for the recipient, then pushes it to the
recipient's realtime room, then optionally emails it. Only the first step is
durable; push and email are best effort and never raise into the lifecycle
transition that triggered them.
"""

from __future__ import annotations

import logging
from typing import Any

from karya.shared.structured_logging import get_structured_logger

from .base_notifier import BaseNotifier
from .realtime import RealtimeChannel

logger = logging.getLogger(__name__)

CONTEXT_FIELDS = ("application_id", "interview_id", "project_id", "payment_id")


class NotificationDispatcher:
    """
    Fan-out for lifecycle notifications.

    Works with any BaseNotifier implementation for email and any
    RealtimeChannel for live pushes; either may be omitted.
    """

    def __init__(
        self,
        store,
        realtime: RealtimeChannel | None = None,
        email_notifier: BaseNotifier | None = None,
    ):
        """
        Initialize notification dispatcher.

        Args:
            store: Entity store used to persist notifications and look up emails
            realtime: Channel for pushes to connected clients (optional)
            email_notifier: BaseNotifier implementation for email (optional)
        """
        if not store:
            raise ValueError("Store is required")
        self.store = store
        self.realtime = realtime
        self.email_notifier = email_notifier

    def notify(
        self,
        recipient_id: int,
        message: str,
        event: str = "notification",
        email_subject: str | None = None,
        email_body: str | None = None,
        recipient_email: str | None = None,
        **context: Any,
    ) -> dict[str, Any] | None:
        """
        Notify one user about a lifecycle event.

        Args:
            recipient_id: User to notify; also the realtime room key
            message: Human-readable message stored and pushed
            event: Realtime event name (e.g. "interviewScheduled")
            email_subject: Send an email with this subject when given
            email_body: Email body; defaults to ``message``
            recipient_email: Address to use instead of the stored user email
            **context: Entity references (application_id, interview_id,
                project_id, payment_id) plus extra realtime payload fields

        Returns:
            The persisted notification, or None if persisting failed
        """
        log = get_structured_logger(__name__, recipient_id=recipient_id, event=event)
        refs = {key: context.get(key) for key in CONTEXT_FIELDS}

        notification = None
        try:
            notification = self.store.insert_notification(
                recipient_id=recipient_id, message=message, event=event, **refs
            )
        except Exception as e:
            log.error(f"Failed to persist notification: {e}", exc_info=True)

        if self.realtime is not None:
            payload = {key: value for key, value in context.items() if value is not None}
            payload["message"] = message
            payload["recipient_id"] = recipient_id
            if notification:
                payload["notification_id"] = notification.get("notification_id")
            try:
                self.realtime.publish(str(recipient_id), event, payload)
            except Exception as e:
                log.warning(f"Realtime push failed: {e}")

        if email_subject and self.email_notifier is not None:
            self._send_email(
                log, recipient_id, recipient_email, email_subject, email_body or message
            )

        return notification

    def _send_email(self, log, recipient_id, recipient_email, subject, body) -> None:
        try:
            user = self.store.get_user(recipient_id) or {}
            address = recipient_email or user.get("email")
            if not address:
                log.warning("No email address on file, skipping email")
                return
            content = self.email_notifier.format_message(user.get("first_name"), body)
            if not self.email_notifier.send_notification(
                recipient=address, subject=subject, content=content
            ):
                log.warning(f"Email '{subject}' was not delivered")
        except Exception as e:
            log.error(f"Email dispatch failed: {e}", exc_info=True)
