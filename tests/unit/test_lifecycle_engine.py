"""Unit tests for ApplicationLifecycleEngine."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from karya.badges import BadgeService
from karya.lifecycle import ApplicationLifecycleEngine, coerce_datetime
from karya.reconciliation import InterviewSweeper
from karya.reviews import ReviewService
from karya.shared.errors import (
    ConflictError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def _status(store, application):
    return store.applications[application["application_id"]]["status"]


class TestEngineInit:
    def test_requires_store(self, dispatcher):
        with pytest.raises(ValueError, match="Store is required"):
            ApplicationLifecycleEngine(store=None, dispatcher=dispatcher)

    def test_requires_dispatcher(self, store):
        with pytest.raises(ValueError, match="Dispatcher is required"):
            ApplicationLifecycleEngine(store=store, dispatcher=None)


class TestCoerceDatetime:
    def test_parses_zulu_suffix(self):
        assert coerce_datetime("2025-06-02T09:00:00Z").utcoffset() == timedelta(0)

    def test_naive_is_utc(self):
        assert coerce_datetime("2025-06-02T09:00:00").tzinfo is not None

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid scheduled_time"):
            coerce_datetime("next tuesday")

    def test_rejects_missing(self):
        with pytest.raises(ValidationError, match="scheduled_time is required"):
            coerce_datetime(None)


class TestApply:
    def test_apply_creates_pending_application(self, engine, store, dispatcher, freelancer, job, hirer):
        application = engine.apply_to_job(freelancer["user_id"], "user", job["job_id"], "Hire me")

        assert application["status"] == "Pending"
        assert dispatcher.events_for(hirer["user_id"]) == ["applicationReceived"]

    def test_hirer_cannot_apply(self, engine, hirer, job):
        with pytest.raises(PermissionDeniedError):
            engine.apply_to_job(hirer["user_id"], "hirer", job["job_id"], "Hire me")

    def test_cover_letter_required(self, engine, freelancer, job):
        with pytest.raises(ValidationError, match="Cover letter is required"):
            engine.apply_to_job(freelancer["user_id"], "user", job["job_id"], "   ")

    def test_unknown_job(self, engine, freelancer):
        with pytest.raises(NotFoundError):
            engine.apply_to_job(freelancer["user_id"], "user", 999, "Hire me")

    def test_duplicate_application(self, engine, freelancer, job, application):
        with pytest.raises(ConflictError):
            engine.apply_to_job(freelancer["user_id"], "user", job["job_id"], "Again")


class TestScheduleInterview:
    def test_schedules_and_claims_application(
        self, engine, store, dispatcher, calendar, hirer, freelancer, application, clock
    ):
        when = clock() + timedelta(days=2)

        interview = engine.schedule_interview(hirer["user_id"], application["application_id"], when)

        assert interview["status"] == "Scheduled"
        assert interview["meet_link"] == "https://meet.google.com/abc-1"
        assert interview["google_event_id"] == "evt-1"
        assert interview["created_by"] == hirer["user_id"]
        assert _status(store, application) == "MeetingScheduled"
        assert calendar.scheduled[0]["attendees"] == [freelancer["email"], hirer["email"]]
        notice = dispatcher.sent[-1]
        assert notice["recipient_id"] == freelancer["user_id"]
        assert notice["event"] == "interviewScheduled"
        assert notice["meet_link"] == interview["meet_link"]

    def test_accepts_iso_string(self, engine, hirer, application):
        interview = engine.schedule_interview(
            hirer["user_id"], application["application_id"], "2030-01-01T10:00:00Z"
        )
        assert interview["scheduled_time"].year == 2030

    def test_freelancer_cannot_schedule(self, engine, store, freelancer, application, clock):
        with pytest.raises(PermissionDeniedError):
            engine.schedule_interview(
                freelancer["user_id"], application["application_id"], clock() + timedelta(days=1)
            )
        assert _status(store, application) == "Pending"
        assert store.interviews == {}

    def test_past_time_rejected(self, engine, hirer, application, clock):
        with pytest.raises(ValidationError, match="must be in the future"):
            engine.schedule_interview(
                hirer["user_id"], application["application_id"], clock() - timedelta(minutes=1)
            )

    def test_outside_pending_is_invalid_state(self, engine, store, hirer, application, scheduled_interview, clock):
        with pytest.raises(InvalidStateError):
            engine.schedule_interview(
                hirer["user_id"], application["application_id"], clock() + timedelta(days=3)
            )
        assert len(store.interviews) == 1

    def test_requires_calendar_credential(self, engine, store, hirer, application, clock):
        store.update_user_google_tokens(hirer["user_id"], None)

        with pytest.raises(CredentialMissingError):
            engine.schedule_interview(
                hirer["user_id"], application["application_id"], clock() + timedelta(days=1)
            )
        assert _status(store, application) == "Pending"

    def test_provider_failure_releases_claim(self, engine, store, calendar, hirer, application, clock):
        calendar.error = ExternalProviderError("google_calendar", "unexpected status 500")

        with pytest.raises(ExternalProviderError):
            engine.schedule_interview(
                hirer["user_id"], application["application_id"], clock() + timedelta(days=1)
            )
        assert _status(store, application) == "Pending"
        assert store.interviews == {}

    def test_refreshed_credential_is_persisted(self, engine, store, calendar, hirer, application, clock):
        calendar.credential_update = {"access_token": "new", "refresh_token": "1//refresh", "expiry_date": 1}

        engine.schedule_interview(hirer["user_id"], application["application_id"], clock() + timedelta(days=1))

        assert store.users[hirer["user_id"]]["google_tokens"]["access_token"] == "new"

    def test_concurrent_claim_loses(self, engine, store, hirer, application, clock):
        """A status change between the read and the write surfaces as a conflict."""
        original = store.update_application_status

        def racing_update(application_id, new_status, expected):
            store.applications[application_id]["status"] = "Rejected"
            return original(application_id, new_status, expected)

        store.update_application_status = racing_update
        with pytest.raises(ConflictError):
            engine.schedule_interview(
                hirer["user_id"], application["application_id"], clock() + timedelta(days=1)
            )
        assert store.interviews == {}


class TestRescheduleAndCancel:
    def test_reschedule_moves_event(self, engine, store, calendar, hirer, scheduled_interview, application, clock):
        new_time = clock() + timedelta(days=5)

        updated = engine.reschedule_interview(hirer["user_id"], scheduled_interview["interview_id"], new_time)

        assert updated["scheduled_time"] == new_time
        assert calendar.rescheduled == [("evt-1", new_time)]
        assert _status(store, application) == "MeetingScheduled"

    def test_reschedule_only_by_creator(self, engine, freelancer, scheduled_interview, clock):
        with pytest.raises(PermissionDeniedError):
            engine.reschedule_interview(
                freelancer["user_id"], scheduled_interview["interview_id"], clock() + timedelta(days=5)
            )

    def test_cancel_returns_application_to_pending(
        self, engine, store, calendar, dispatcher, hirer, freelancer, scheduled_interview, application
    ):
        cancelled = engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "Conflict")

        assert cancelled["status"] == "Cancelled"
        assert cancelled["cancel_reason"] == "Conflict"
        assert calendar.cancelled == ["evt-1"]
        assert _status(store, application) == "Pending"
        assert dispatcher.sent[-1]["event"] == "interviewCancelled"

    def test_reschedule_provider_failure_restores_time(
        self, engine, store, calendar, dispatcher, hirer, scheduled_interview, clock
    ):
        calendar.error = ExternalProviderError("google_calendar", "unexpected status 503")
        notices = len(dispatcher.sent)

        with pytest.raises(ExternalProviderError):
            engine.reschedule_interview(
                hirer["user_id"], scheduled_interview["interview_id"], clock() + timedelta(days=5)
            )

        stored = store.interviews[scheduled_interview["interview_id"]]
        assert stored["scheduled_time"] == scheduled_interview["scheduled_time"]
        assert stored["status"] == "Scheduled"
        assert len(dispatcher.sent) == notices

    def test_reschedule_after_concurrent_cancel_leaves_event_alone(
        self, engine, store, calendar, hirer, scheduled_interview, clock
    ):
        original = store.update_interview_schedule

        def racing_update(interview_id, scheduled_time, expected):
            store.interviews[interview_id]["status"] = "Cancelled"
            return original(interview_id, scheduled_time, expected)

        store.update_interview_schedule = racing_update
        with pytest.raises(ConflictError):
            engine.reschedule_interview(
                hirer["user_id"], scheduled_interview["interview_id"], clock() + timedelta(days=5)
            )
        assert calendar.rescheduled == []

    def test_cancel_after_concurrent_change_leaves_event_alone(
        self, engine, store, calendar, hirer, scheduled_interview, application
    ):
        original = store.update_interview_status

        def racing_update(interview_id, new_status, expected, cancel_reason=None):
            store.interviews[interview_id]["status"] = "Completed"
            return original(interview_id, new_status, expected, cancel_reason)

        store.update_interview_status = racing_update
        with pytest.raises(ConflictError):
            engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "Conflict")
        assert calendar.cancelled == []
        assert _status(store, application) == "MeetingScheduled"

    def test_cancel_survives_calendar_failure(
        self, engine, store, calendar, dispatcher, hirer, scheduled_interview, application
    ):
        calendar.error = ExternalProviderError("google_calendar", "unexpected status 503")

        cancelled = engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "Conflict")

        assert cancelled["status"] == "Cancelled"
        assert _status(store, application) == "Pending"
        assert dispatcher.sent[-1]["event"] == "interviewCancelled"

    def test_cancel_requires_reason(self, engine, hirer, scheduled_interview):
        with pytest.raises(ValidationError, match="Cancel reason is required"):
            engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "")

    def test_cancel_completed_interview_is_invalid(self, engine, hirer, scheduled_interview):
        engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Completed")

        with pytest.raises(InvalidStateError):
            engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "Too late")

    def test_application_can_be_rescheduled_after_cancel(self, engine, hirer, scheduled_interview, application, clock):
        engine.cancel_interview(hirer["user_id"], scheduled_interview["interview_id"], "Conflict")

        again = engine.schedule_interview(
            hirer["user_id"], application["application_id"], clock() + timedelta(days=3)
        )
        assert again["status"] == "Scheduled"


class TestOutcomesAndDecisions:
    def test_mark_completed(self, engine, store, dispatcher, hirer, freelancer, scheduled_interview, application):
        updated = engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Completed")

        assert updated["status"] == "Completed"
        assert _status(store, application) == "MeetingCompleted"
        assert "interviewStatusUpdated" in dispatcher.events_for(freelancer["user_id"])
        assert "interviewStatusUpdated" in dispatcher.events_for(hirer["user_id"])

    def test_mark_failed_rejects_application(self, engine, store, hirer, scheduled_interview, application):
        engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Failed")

        assert _status(store, application) == "Rejected"

    def test_mark_status_only_completed_or_failed(self, engine, hirer, scheduled_interview):
        with pytest.raises(ValidationError):
            engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Cancelled")
        with pytest.raises(ValidationError):
            engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Done")

    def test_mark_status_twice_is_invalid(self, engine, hirer, scheduled_interview):
        engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Completed")

        with pytest.raises(InvalidStateError):
            engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Failed")

    def test_hire_requires_completed_interview(self, engine, hirer, application, scheduled_interview):
        with pytest.raises(InvalidStateError):
            engine.confirm_hire(hirer["user_id"], application["application_id"])

    def test_hire(self, engine, store, dispatcher, hirer, freelancer, application, hired_interview):
        assert _status(store, application) == "Hired"
        assert dispatcher.events_for(freelancer["user_id"])[-1] == "applicationHired"

    def test_hire_twice(self, engine, hirer, application, hired_interview):
        with pytest.raises(InvalidStateError, match="already hired"):
            engine.confirm_hire(hirer["user_id"], application["application_id"])

    def test_reject_cancels_scheduled_interview(
        self, engine, store, calendar, hirer, application, scheduled_interview
    ):
        engine.reject_application(hirer["user_id"], application["application_id"])

        assert _status(store, application) == "Rejected"
        interview = store.interviews[scheduled_interview["interview_id"]]
        assert interview["status"] == "Cancelled"
        assert interview["cancel_reason"] == "Application rejected"
        assert calendar.cancelled == ["evt-1"]

    def test_reject_survives_calendar_failure(self, engine, store, calendar, hirer, application, scheduled_interview):
        calendar.error = ExternalProviderError("google_calendar", "unexpected status 500")

        engine.reject_application(hirer["user_id"], application["application_id"])

        assert _status(store, application) == "Rejected"

    def test_reject_hired_application_is_invalid(self, engine, hirer, application, hired_interview):
        with pytest.raises(InvalidStateError):
            engine.reject_application(hirer["user_id"], application["application_id"])

    def test_other_hirer_cannot_reject(self, engine, store, application):
        stranger = store.add_user(role="hirer")

        with pytest.raises(PermissionDeniedError):
            engine.reject_application(stranger["user_id"], application["application_id"])


class TestReadViews:
    def test_get_application_visible_to_parties(self, engine, hirer, freelancer, application, store):
        assert engine.get_application(hirer["user_id"], application["application_id"])
        assert engine.get_application(freelancer["user_id"], application["application_id"])
        outsider = store.add_user()
        with pytest.raises(PermissionDeniedError):
            engine.get_application(outsider["user_id"], application["application_id"])

    def test_list_for_hirer_filters_status(self, engine, hirer, application):
        assert len(engine.list_applications_for_hirer(hirer["user_id"], "Pending")) == 1
        assert engine.list_applications_for_hirer(hirer["user_id"], "Hired") == []

    def test_list_for_hirer_rejects_unknown_status(self, engine, hirer):
        with pytest.raises(ValidationError):
            engine.list_applications_for_hirer(hirer["user_id"], "Archived")


class TestHireToReviewFlow:
    def test_apply_through_review_updates_hirer_badge(
        self, engine, store, dispatcher, project_service, payment_service, card_gateway, hirer, freelancer, job, clock
    ):
        store.update_user_badge = Mock(wraps=store.update_user_badge)
        sweeper = InterviewSweeper(store=store, engine=engine, now_fn=clock)
        reviews = ReviewService(store=store, badge_service=BadgeService(store), dispatcher=dispatcher)

        application = engine.apply_to_job(freelancer["user_id"], "user", job["job_id"], "I can start Monday.")
        interview = engine.schedule_interview(
            hirer["user_id"], application["application_id"], clock() + timedelta(days=1)
        )
        clock.advance(days=1, minutes=61)
        assert sweeper.run().completed == [interview["interview_id"]]
        assert _status(store, application) == "MeetingCompleted"

        engine.confirm_hire(hirer["user_id"], application["application_id"])
        assert _status(store, application) == "Hired"

        project = project_service.create_project(hirer["user_id"], interview["interview_id"], "API build", 5000)
        started = payment_service.initiate_card_payment(hirer["user_id"], project["project_id"], project["payment"])
        card_gateway.intents[started["transaction_id"]]["status"] = "succeeded"
        payment = payment_service.confirm_card_payment(hirer["user_id"], started["payment_id"])
        assert payment["status"] == "completed"
        assert store.projects[project["project_id"]]["status"] == "Completed"

        review = reviews.create_review(
            freelancer["user_id"], project["project_id"], payment["payment_id"], hirer["user_id"], 5
        )

        assert review["rating"] == 5
        store.update_user_badge.assert_called_once()
        assert store.update_user_badge.call_args[0][0] == hirer["user_id"]
        assert dispatcher.events_for(hirer["user_id"])[-1] == "reviewReceived"
