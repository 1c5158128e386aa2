"""Notification inbox: what a polling client sees and marking items read."""

from __future__ import annotations

import logging
from typing import Any

from karya.shared.errors import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 10


class NotificationService:
    """Service for reading a user's notifications."""

    def __init__(self, store, read_limit: int = DEFAULT_READ_LIMIT):
        """Initialize the notification service.

        Args:
            store: Entity store
            read_limit: How many already-read notifications to keep returning
        """
        if not store:
            raise ValueError("Store is required")
        if read_limit < 0:
            raise ValueError("read_limit cannot be negative")
        self.store = store
        self.read_limit = read_limit

    def list_for_user(self, user_id: int) -> list[dict[str, Any]]:
        """Every unread notification, followed by the most recent read ones.

        Args:
            user_id: Recipient

        Returns:
            Unread notifications (newest first) then up to ``read_limit`` read ones
        """
        unread = self.store.list_notifications(user_id, is_read=False)
        read = self.store.list_notifications(user_id, is_read=True, limit=self.read_limit)
        return unread + read

    def mark_read(self, notification_id: int, user_id: int) -> dict[str, Any]:
        """Mark one of the user's notifications as read.

        Raises:
            NotFoundError: If the notification does not exist
            PermissionDeniedError: If it belongs to someone else
        """
        notification = self.store.get_notification(notification_id)
        if not notification:
            raise NotFoundError("Notification", notification_id)
        if notification["recipient_id"] != user_id:
            raise PermissionDeniedError("You can only mark your own notifications as read")

        updated = self.store.mark_notification_read(notification_id, user_id)
        logger.info(f"Notification {notification_id} marked read by user {user_id}")
        return updated or {**notification, "is_read": True}
