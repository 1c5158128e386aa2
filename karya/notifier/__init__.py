"""
Notification Service

Persisted notifications with best-effort realtime push and email delivery.
"""

from .base_notifier import BaseNotifier
from .dispatcher import NotificationDispatcher
from .email_notifier import EmailNotifier
from .notification_service import NotificationService
from .realtime import RealtimeChannel, RoomRegistry

__all__ = [
    "BaseNotifier",
    "EmailNotifier",
    "NotificationDispatcher",
    "NotificationService",
    "RealtimeChannel",
    "RoomRegistry",
]
