"""Unit tests for lifecycle statuses and transition tables."""

import pytest

from karya.lifecycle.states import (
    ApplicationEvent,
    ApplicationStatus,
    InterviewStatus,
    check_interview_transition,
    next_application_status,
)
from karya.shared.errors import InvalidStateError


class TestApplicationTransitions:
    @pytest.mark.parametrize(
        "current, event, expected",
        [
            ("Pending", ApplicationEvent.SCHEDULE_INTERVIEW, ApplicationStatus.MEETING_SCHEDULED),
            ("MeetingScheduled", ApplicationEvent.INTERVIEW_COMPLETED, ApplicationStatus.MEETING_COMPLETED),
            ("MeetingScheduled", ApplicationEvent.INTERVIEW_FAILED, ApplicationStatus.REJECTED),
            ("MeetingCompleted", ApplicationEvent.CONFIRM_HIRE, ApplicationStatus.HIRED),
            ("MeetingScheduled", ApplicationEvent.CANCEL_INTERVIEW, ApplicationStatus.PENDING),
            ("Pending", ApplicationEvent.REJECT, ApplicationStatus.REJECTED),
            ("MeetingCompleted", ApplicationEvent.REJECT, ApplicationStatus.REJECTED),
        ],
    )
    def test_allowed(self, current, event, expected):
        assert next_application_status(current, event) is expected

    @pytest.mark.parametrize(
        "current, event",
        [
            ("MeetingScheduled", ApplicationEvent.SCHEDULE_INTERVIEW),
            ("Pending", ApplicationEvent.CONFIRM_HIRE),
            ("MeetingScheduled", ApplicationEvent.CONFIRM_HIRE),
            ("Hired", ApplicationEvent.REJECT),
            ("Rejected", ApplicationEvent.CANCEL_INTERVIEW),
            ("Pending", ApplicationEvent.INTERVIEW_COMPLETED),
        ],
    )
    def test_rejected(self, current, event):
        with pytest.raises(InvalidStateError):
            next_application_status(current, event)

    def test_terminal_statuses_accept_no_event(self):
        for status in (ApplicationStatus.HIRED, ApplicationStatus.REJECTED):
            assert status.is_terminal
            for event in ApplicationEvent:
                with pytest.raises(InvalidStateError):
                    next_application_status(status, event)

    def test_unknown_status(self):
        with pytest.raises(InvalidStateError, match="Unknown application status"):
            next_application_status("Archived", ApplicationEvent.REJECT)


class TestInterviewTransitions:
    @pytest.mark.parametrize("target", [InterviewStatus.COMPLETED, InterviewStatus.FAILED, InterviewStatus.CANCELLED])
    def test_scheduled_can_finish(self, target):
        check_interview_transition("Scheduled", target)

    @pytest.mark.parametrize("current", ["Completed", "Failed", "Cancelled"])
    def test_finished_interviews_are_final(self, current):
        with pytest.raises(InvalidStateError):
            check_interview_transition(current, InterviewStatus.CANCELLED)
