"""External calendar integration for interview meetings."""

from .calendar_account_service import CalendarAccountService
from .google_calendar_client import (
    CALENDAR_SCOPES,
    CalendarResult,
    GoogleCalendarClient,
    has_valid_credential,
    validate_attendee_email,
)

__all__ = [
    "CALENDAR_SCOPES",
    "CalendarAccountService",
    "CalendarResult",
    "GoogleCalendarClient",
    "has_valid_credential",
    "validate_attendee_email",
]
