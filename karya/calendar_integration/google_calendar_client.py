"""
Google Calendar client

Creates, moves and deletes interview events with an auto-generated Google
Meet link on behalf of a hirer who granted delegated calendar access.

The stored credential bundle has the shape Google's token endpoint returns
(``access_token``, ``refresh_token``, ``expiry_date`` in epoch milliseconds,
``scope``, ``token_type``). Expired access tokens are refreshed on demand;
the refreshed bundle is handed back to the caller in ``credential_update``
for persisting. This client never writes to storage itself.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from karya.shared.base_client import BaseAPIClient
from karya.shared.errors import (
    CredentialExpiredAndRefreshFailedError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidAttendeeEmailError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_BASE = "https://www.googleapis.com/calendar/v3"
GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPES = (
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Refresh slightly early so a token does not expire mid-request
EXPIRY_SKEW_MS = 60_000


@dataclass
class CalendarResult:
    """Outcome of a calendar call plus a refreshed credential to persist, if any."""

    event_id: str | None = None
    meet_link: str | None = None
    credential_update: dict[str, Any] | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def validate_attendee_email(email: str | None) -> str:
    """Return the trimmed address or raise InvalidAttendeeEmailError."""
    address = (email or "").strip()
    if not EMAIL_PATTERN.match(address):
        raise InvalidAttendeeEmailError(f"Invalid attendee email address: {email!r}")
    return address


def has_valid_credential(credential: dict[str, Any] | None, now_ms: int | None = None) -> bool:
    """Whether ``credential`` holds an access token that has not expired yet."""
    if not credential or not credential.get("access_token"):
        return False
    expiry = credential.get("expiry_date")
    if expiry is None:
        return True
    return int(expiry) > (now_ms if now_ms is not None else _now_ms())


class GoogleCalendarClient(BaseAPIClient):
    """Calendar adapter backed by the Google Calendar REST API."""

    provider_name = "google_calendar"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        calendar_id: str = "primary",
        timeout: float | None = None,
        base_url: str = GOOGLE_CALENDAR_BASE,
        token_url: str = GOOGLE_OAUTH_TOKEN_URL,
        now_ms: Callable[[], int] = _now_ms,
    ):
        """
        Initialize the calendar client.

        Args:
            client_id: OAuth client id. If None, reads GOOGLE_CLIENT_ID.
            client_secret: OAuth client secret. If None, reads GOOGLE_CLIENT_SECRET.
            calendar_id: Calendar to create events in
            timeout: Request timeout in seconds. If None, reads EXTERNAL_TIMEOUT_SECONDS.
            base_url: Calendar API base URL
            token_url: OAuth token endpoint
            now_ms: Clock returning epoch milliseconds
        """
        super().__init__(
            base_url=base_url,
            timeout=timeout or float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "15")),
        )
        self.client_id = client_id or os.getenv("GOOGLE_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("GOOGLE_CLIENT_SECRET")
        self.calendar_id = calendar_id
        self.token_url = token_url
        self.now_ms = now_ms

    def _get_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _auth_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}

    def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Exchange an OAuth consent code for a credential bundle.

        Raises:
            CredentialMissingError: If Google did not issue a refresh token
        """
        if not code:
            raise CredentialMissingError("Authorization code is required")
        tokens = self._request(
            "POST",
            self.token_url,
            headers={},
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if not tokens.get("refresh_token"):
            raise CredentialMissingError(
                "Google did not return a refresh token. Please grant calendar access again."
            )
        return self._with_expiry(tokens)

    def _with_expiry(self, tokens: dict[str, Any], base: dict[str, Any] | None = None) -> dict[str, Any]:
        credential = dict(base or {})
        credential.update({k: v for k, v in tokens.items() if v is not None and k != "expires_in"})
        expires_in = tokens.get("expires_in") or 3600
        credential["expiry_date"] = self.now_ms() + int(expires_in) * 1000
        return credential

    def ensure_access_token(self, credential: dict[str, Any] | None) -> tuple[str, dict[str, Any] | None]:
        """Return a usable access token and, if it had to be refreshed, the new bundle.

        Raises:
            CredentialMissingError: If no credential is stored
            CredentialExpiredAndRefreshFailedError: If refreshing failed
            ProviderTimeoutError: If the token endpoint timed out
        """
        if not credential or not (credential.get("access_token") or credential.get("refresh_token")):
            raise CredentialMissingError(
                "Google authentication required. Please authenticate with Google first."
            )

        expiry = credential.get("expiry_date")
        access_token = credential.get("access_token")
        if access_token and (expiry is None or int(expiry) > self.now_ms() + EXPIRY_SKEW_MS):
            return access_token, None

        refresh_token = credential.get("refresh_token")
        if not refresh_token:
            raise CredentialExpiredAndRefreshFailedError(
                "Calendar access expired and cannot be refreshed. Please reconnect Google."
            )

        try:
            tokens = self._request(
                "POST",
                self.token_url,
                headers={},
                data={
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "refresh_token",
                },
            )
        except ProviderTimeoutError:
            raise
        except ExternalProviderError as e:
            raise CredentialExpiredAndRefreshFailedError(
                "Calendar access expired and refresh was refused. Please reconnect Google."
            ) from e

        if not tokens.get("access_token"):
            raise CredentialExpiredAndRefreshFailedError(
                "Google did not return a new access token. Please reconnect Google."
            )

        refreshed = self._with_expiry(tokens, base=credential)
        logger.info("Refreshed Google calendar access token")
        return refreshed["access_token"], refreshed

    def schedule_meeting(
        self,
        credential: dict[str, Any] | None,
        attendees: list[str],
        start_time: datetime,
        duration_minutes: int,
        subject: str,
        description: str,
        request_id: str,
    ) -> CalendarResult:
        """
        Create a calendar event with a generated Meet link.

        Args:
            credential: The hirer's stored credential bundle
            attendees: Exactly two addresses (freelancer, hirer)
            start_time: Timezone-aware start time
            duration_minutes: Event length
            subject: Event summary
            description: Event description
            request_id: Idempotency key for the conference request

        Returns:
            CalendarResult with meet_link, event_id and any refreshed credential

        Raises:
            InvalidAttendeeEmailError: If an attendee address is malformed
            CredentialMissingError / CredentialExpiredAndRefreshFailedError
            ExternalProviderError: If Google rejects the request
        """
        if len(attendees) != 2:
            raise InvalidAttendeeEmailError("Exactly two attendees are required")
        freelancer_email, hirer_email = (validate_attendee_email(a) for a in attendees)

        access_token, credential_update = self.ensure_access_token(credential)

        event = {
            "summary": subject,
            "description": description,
            **self._event_window(start_time, duration_minutes),
            "organizer": {"email": hirer_email},
            "attendees": [
                {"email": freelancer_email, "responseStatus": "needsAction"},
                {"email": hirer_email, "responseStatus": "accepted"},
            ],
            "conferenceData": {
                "createRequest": {
                    "requestId": f"karya-interview-{request_id}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }

        data = self._request(
            "POST",
            f"/calendars/{self.calendar_id}/events",
            headers=self._auth_headers(access_token),
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            json=event,
        )

        meet_link = data.get("hangoutLink") or self._video_entry_point(data)
        event_id = data.get("id")
        if not meet_link or not event_id:
            logger.error(f"Calendar event response lacked link or id: keys={sorted(data)}")
            raise ExternalProviderError(self.provider_name, "event created without a meeting link")

        logger.info(f"Created calendar event {event_id}")
        return CalendarResult(event_id=event_id, meet_link=meet_link, credential_update=credential_update)

    def reschedule_meeting(
        self,
        credential: dict[str, Any] | None,
        event_id: str,
        start_time: datetime,
        duration_minutes: int,
    ) -> CalendarResult:
        """Move an existing event to a new start time."""
        access_token, credential_update = self.ensure_access_token(credential)
        self._request(
            "PATCH",
            f"/calendars/{self.calendar_id}/events/{event_id}",
            headers=self._auth_headers(access_token),
            params={"sendUpdates": "all"},
            json=self._event_window(start_time, duration_minutes),
        )
        logger.info(f"Rescheduled calendar event {event_id}")
        return CalendarResult(event_id=event_id, credential_update=credential_update)

    def cancel_meeting(self, credential: dict[str, Any] | None, event_id: str) -> CalendarResult:
        """Delete an event; an event that is already gone counts as cancelled."""
        access_token, credential_update = self.ensure_access_token(credential)
        try:
            self._request(
                "DELETE",
                f"/calendars/{self.calendar_id}/events/{event_id}",
                headers=self._auth_headers(access_token),
                params={"sendUpdates": "all"},
                expect_json=False,
            )
        except ProviderTimeoutError:
            raise
        except ExternalProviderError as e:
            if "status 404" in str(e) or "status 410" in str(e):
                logger.info(f"Calendar event {event_id} already removed")
            else:
                raise
        return CalendarResult(event_id=event_id, credential_update=credential_update)

    @staticmethod
    def _event_window(start_time: datetime, duration_minutes: int) -> dict[str, Any]:
        start = start_time if start_time.tzinfo else start_time.replace(tzinfo=timezone.utc)
        start = start.astimezone(timezone.utc)
        end = start + timedelta(minutes=duration_minutes)
        return {
            "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
        }

    @staticmethod
    def _video_entry_point(data: dict[str, Any]) -> str | None:
        for entry in (data.get("conferenceData") or {}).get("entryPoints", []):
            if entry.get("entryPointType") == "video" and entry.get("uri"):
                return entry["uri"]
        return None
