"""Unit tests for the interview reconciliation sweep."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from karya.lifecycle import ApplicationLifecycleEngine
from karya.reconciliation import InterviewSweeper


@pytest.fixture
def sweeper(store, dispatcher, clock):
    engine = ApplicationLifecycleEngine(store=store, dispatcher=dispatcher, now_fn=clock, meeting_duration_minutes=60)
    return InterviewSweeper(store=store, engine=engine, now_fn=clock, meeting_duration_minutes=60)


class TestInterviewSweeper:
    def test_requires_store(self, dispatcher):
        with pytest.raises(ValueError, match="Store is required"):
            InterviewSweeper(store=None, dispatcher=dispatcher)

    def test_future_interview_untouched(self, sweeper, store, scheduled_interview):
        result = sweeper.run()

        assert result.as_dict() == {"completed": 0, "skipped": 0, "failed": 0}
        assert store.interviews[scheduled_interview["interview_id"]]["status"] == "Scheduled"

    def test_interview_within_meeting_window_untouched(self, sweeper, store, scheduled_interview, clock):
        clock.advance(days=1, minutes=30)

        assert sweeper.run().completed == []

    def test_stale_interview_completed(
        self, sweeper, store, dispatcher, hirer, freelancer, application, scheduled_interview, clock
    ):
        clock.advance(days=1, hours=1)

        result = sweeper.run()

        assert result.completed == [scheduled_interview["interview_id"]]
        assert store.interviews[scheduled_interview["interview_id"]]["status"] == "Completed"
        assert store.applications[application["application_id"]]["status"] == "MeetingCompleted"
        assert dispatcher.events_for(freelancer["user_id"])[-1] == "interviewStatusUpdated"
        assert dispatcher.events_for(hirer["user_id"])[-1] == "interviewStatusUpdated"

    def test_second_run_is_a_no_op(self, sweeper, dispatcher, scheduled_interview, clock):
        clock.advance(days=2)
        sweeper.run()
        notices = len(dispatcher.sent)

        result = sweeper.run()

        assert result.as_dict() == {"completed": 0, "skipped": 0, "failed": 0}
        assert len(dispatcher.sent) == notices

    def test_race_with_manual_marking_is_skipped(self, sweeper, store, dispatcher, scheduled_interview, clock):
        clock.advance(days=2)
        stale = store.find_stale_interviews(clock() - timedelta(hours=1))
        store.find_stale_interviews = lambda cutoff, limit=500: stale
        store.interviews[scheduled_interview["interview_id"]]["status"] = "Failed"
        notices = len(dispatcher.sent)

        result = sweeper.run()

        assert result.skipped == [scheduled_interview["interview_id"]]
        assert len(dispatcher.sent) == notices

    def test_failure_on_one_interview_does_not_stop_sweep(
        self, sweeper, store, scheduled_interview, clock
    ):
        clock.advance(days=2)
        orphan = store.insert_interview(
            application_id=scheduled_interview["application_id"],
            scheduled_time=clock() - timedelta(days=3),
            meet_link="https://meet.google.com/old",
            google_event_id=None,
            status="Scheduled",
            created_by=scheduled_interview["created_by"],
        )
        original = store.get_application

        def flaky_get_application(application_id):
            if flaky_get_application.calls == 0:
                flaky_get_application.calls += 1
                raise RuntimeError("connection reset")
            return original(application_id)

        flaky_get_application.calls = 0
        store.get_application = flaky_get_application

        result = sweeper.run()

        assert result.failed == [orphan["interview_id"]]
        assert result.completed == [scheduled_interview["interview_id"]]

    def test_application_that_moved_on_is_skipped(
        self, sweeper, store, dispatcher, application, scheduled_interview, clock
    ):
        clock.advance(days=2)
        store.applications[application["application_id"]]["status"] = "Rejected"
        notices = len(dispatcher.sent)

        result = sweeper.run()

        assert result.skipped == [scheduled_interview["interview_id"]]
        assert store.interviews[scheduled_interview["interview_id"]]["status"] == "Scheduled"
        assert store.applications[application["application_id"]]["status"] == "Rejected"
        assert len(dispatcher.sent) == notices

    def test_transitions_go_through_engine(self, store, scheduled_interview, clock):
        clock.advance(days=2)
        engine = Mock()
        sweeper = InterviewSweeper(store=store, engine=engine, now_fn=clock)

        result = sweeper.run()

        engine.complete_stale_interview.assert_called_once_with(scheduled_interview["interview_id"])
        assert result.completed == [scheduled_interview["interview_id"]]
        assert store.interviews[scheduled_interview["interview_id"]]["status"] == "Scheduled"

    def test_builds_engine_from_dispatcher(self, store, dispatcher, application, scheduled_interview, clock):
        clock.advance(days=2)
        sweeper = InterviewSweeper(store=store, dispatcher=dispatcher, now_fn=clock)

        assert sweeper.run().completed == [scheduled_interview["interview_id"]]
        assert store.applications[application["application_id"]]["status"] == "MeetingCompleted"
