"""Connecting a hirer's Google calendar and checking the connection."""

import logging
from typing import Any

from karya.shared.errors import NotFoundError

from .google_calendar_client import GoogleCalendarClient, has_valid_credential

logger = logging.getLogger(__name__)


class CalendarAccountService:
    """Stores the credential bundle obtained from the OAuth consent exchange."""

    def __init__(self, store, calendar: GoogleCalendarClient):
        if not store:
            raise ValueError("Store is required")
        if not calendar:
            raise ValueError("Calendar client is required")
        self.store = store
        self.calendar = calendar

    def connect(self, user_id: int, code: str, redirect_uri: str) -> None:
        """Exchange a consent ``code`` and store the resulting credential on the user."""
        if not self.store.get_user(user_id):
            raise NotFoundError("User", user_id)
        credential = self.calendar.exchange_code(code, redirect_uri)
        self.store.update_user_google_tokens(user_id, credential)
        logger.info(f"Connected Google calendar for user {user_id}")

    def disconnect(self, user_id: int) -> None:
        self.store.update_user_google_tokens(user_id, None)
        logger.info(f"Disconnected Google calendar for user {user_id}")

    def status(self, user_id: int) -> dict[str, Any]:
        """Whether the user has a credential, and whether its access token is still valid.

        An expired token with a refresh token is still usable for scheduling.
        """
        user = self.store.get_user(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        credential = user.get("google_tokens") or {}
        return {
            "connected": bool(credential),
            "valid": has_valid_credential(credential, self.calendar.now_ms()),
            "refreshable": bool(credential.get("refresh_token")),
        }
