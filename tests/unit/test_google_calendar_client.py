"""Unit tests for GoogleCalendarClient and CalendarAccountService."""

from datetime import UTC, datetime
from unittest.mock import Mock, patch

import pytest
import requests

from karya.calendar_integration import (
    CalendarAccountService,
    GoogleCalendarClient,
    has_valid_credential,
    validate_attendee_email,
)
from karya.shared.errors import (
    CredentialExpiredAndRefreshFailedError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidAttendeeEmailError,
    ProviderTimeoutError,
)

NOW_MS = 1_750_000_000_000
START = datetime(2025, 6, 2, 9, 0, tzinfo=UTC)
FRESH = {"access_token": "ya29.fresh", "refresh_token": "1//r", "expiry_date": NOW_MS + 3_600_000}
EXPIRED = {"access_token": "ya29.old", "refresh_token": "1//r", "expiry_date": NOW_MS - 1}


def _response(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    response.text = str(body)
    return response


@pytest.fixture
def client():
    return GoogleCalendarClient(client_id="cid", client_secret="csecret", timeout=5, now_ms=lambda: NOW_MS)


def _schedule(client, credential=FRESH, attendees=("ram@example.com", "hana@example.com")):
    return client.schedule_meeting(
        credential,
        attendees=list(attendees),
        start_time=START,
        duration_minutes=60,
        subject="Interview for Backend Developer",
        description="Interview",
        request_id="7-1748854800",
    )


class TestHelpers:
    def test_validate_attendee_email(self):
        assert validate_attendee_email(" ram@example.com ") == "ram@example.com"
        with pytest.raises(InvalidAttendeeEmailError):
            validate_attendee_email("ram@example")

    def test_has_valid_credential(self):
        assert has_valid_credential(FRESH, NOW_MS) is True
        assert has_valid_credential(EXPIRED, NOW_MS) is False
        assert has_valid_credential(None, NOW_MS) is False


class TestScheduleMeeting:
    def test_creates_event_with_meet_link(self, client):
        with patch.object(client.session, "request") as request:
            request.return_value = _response(body={"id": "evt1", "hangoutLink": "https://meet.google.com/x"})

            result = _schedule(client)

        assert result.event_id == "evt1"
        assert result.meet_link == "https://meet.google.com/x"
        assert result.credential_update is None
        method, url = request.call_args[0]
        kwargs = request.call_args[1]
        assert method == "POST"
        assert url.endswith("/calendars/primary/events")
        assert kwargs["params"] == {"conferenceDataVersion": 1, "sendUpdates": "all"}
        assert kwargs["headers"]["Authorization"] == "Bearer ya29.fresh"
        body = kwargs["json"]
        assert body["conferenceData"]["createRequest"]["requestId"] == "karya-interview-7-1748854800"
        assert body["start"]["dateTime"] == "2025-06-02T09:00:00+00:00"
        assert body["end"]["dateTime"] == "2025-06-02T10:00:00+00:00"

    def test_meet_link_from_entry_points(self, client):
        body = {
            "id": "evt1",
            "conferenceData": {"entryPoints": [{"entryPointType": "video", "uri": "https://meet.google.com/y"}]},
        }
        with patch.object(client.session, "request", return_value=_response(body=body)):
            assert _schedule(client).meet_link == "https://meet.google.com/y"

    def test_missing_meet_link_is_provider_error(self, client):
        with patch.object(client.session, "request", return_value=_response(body={"id": "evt1"})):
            with pytest.raises(ExternalProviderError):
                _schedule(client)

    def test_invalid_attendee_makes_no_call(self, client):
        with patch.object(client.session, "request") as request:
            with pytest.raises(InvalidAttendeeEmailError):
                _schedule(client, attendees=("not-an-email", "hana@example.com"))
        request.assert_not_called()

    def test_missing_credential(self, client):
        with pytest.raises(CredentialMissingError):
            _schedule(client, credential=None)

    def test_expired_token_is_refreshed(self, client):
        refreshed = _response(body={"access_token": "ya29.new", "expires_in": 3599})
        created = _response(body={"id": "evt1", "hangoutLink": "https://meet.google.com/x"})
        with patch.object(client.session, "request", side_effect=[refreshed, created]) as request:
            result = _schedule(client, credential=EXPIRED)

        assert result.credential_update["access_token"] == "ya29.new"
        assert result.credential_update["refresh_token"] == "1//r"
        assert result.credential_update["expiry_date"] == NOW_MS + 3_599_000
        token_call = request.call_args_list[0]
        assert token_call[1]["data"]["grant_type"] == "refresh_token"
        assert request.call_args_list[1][1]["headers"]["Authorization"] == "Bearer ya29.new"

    def test_refresh_refused(self, client):
        with patch.object(client.session, "request", return_value=_response(400, {"error": "invalid_grant"})):
            with pytest.raises(CredentialExpiredAndRefreshFailedError):
                _schedule(client, credential=EXPIRED)

    def test_expired_without_refresh_token(self, client):
        with pytest.raises(CredentialExpiredAndRefreshFailedError):
            _schedule(client, credential={"access_token": "ya29.old", "expiry_date": NOW_MS - 1})

    def test_timeout(self, client):
        with patch.object(client.session, "request", side_effect=requests.Timeout("read timed out")):
            with pytest.raises(ProviderTimeoutError):
                _schedule(client)


class TestRescheduleAndCancel:
    def test_reschedule_patches_event(self, client):
        with patch.object(client.session, "request", return_value=_response(body={"id": "evt1"})) as request:
            client.reschedule_meeting(FRESH, "evt1", START, 30)

        method, url = request.call_args[0]
        assert method == "PATCH"
        assert url.endswith("/events/evt1")
        assert request.call_args[1]["json"]["end"]["dateTime"] == "2025-06-02T09:30:00+00:00"

    def test_cancel_deletes_event(self, client):
        with patch.object(client.session, "request", return_value=_response(204)) as request:
            result = client.cancel_meeting(FRESH, "evt1")

        assert request.call_args[0][0] == "DELETE"
        assert result.event_id == "evt1"

    @pytest.mark.parametrize("status", [404, 410])
    def test_cancel_already_gone(self, client, status):
        with patch.object(client.session, "request", return_value=_response(status, {})):
            client.cancel_meeting(FRESH, "evt1")

    def test_cancel_server_error(self, client):
        with patch.object(client.session, "request", return_value=_response(500, {})):
            with pytest.raises(ExternalProviderError):
                client.cancel_meeting(FRESH, "evt1")


class TestCalendarAccountService:
    def test_connect_stores_credential(self, client, store):
        user = store.add_user(role="hirer")
        tokens = {"access_token": "a", "refresh_token": "r", "expires_in": 3600, "scope": "calendar"}
        with patch.object(client.session, "request", return_value=_response(body=tokens)):
            CalendarAccountService(store, client).connect(user["user_id"], "code-1", "https://karya.test/cb")

        stored = store.users[user["user_id"]]["google_tokens"]
        assert stored["refresh_token"] == "r"
        assert stored["expiry_date"] == NOW_MS + 3_600_000
        assert "expires_in" not in stored

    def test_connect_without_refresh_token(self, client, store):
        user = store.add_user(role="hirer")
        with patch.object(client.session, "request", return_value=_response(body={"access_token": "a"})):
            with pytest.raises(CredentialMissingError):
                CalendarAccountService(store, client).connect(user["user_id"], "code-1", "https://karya.test/cb")
        assert store.users[user["user_id"]]["google_tokens"] is None

    def test_status_and_disconnect(self, client, store):
        user = store.add_user(role="hirer", google_tokens=dict(EXPIRED))
        service = CalendarAccountService(store, client)

        assert service.status(user["user_id"]) == {"connected": True, "valid": False, "refreshable": True}
        service.disconnect(user["user_id"])
        assert service.status(user["user_id"]) == {"connected": False, "valid": False, "refreshable": False}
