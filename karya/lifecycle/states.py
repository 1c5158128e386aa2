"""Statuses and transition tables for the application lifecycle.

Every status value stored for an Application, Interview, Project, Task or
Payment comes from the enums below, and every status change the services
perform is looked up in one of the transition tables first.
"""

from __future__ import annotations

from enum import Enum

from karya.shared.errors import InvalidStateError


class Role(str, Enum):
    ADMIN = "admin"
    HIRER = "hirer"
    FREELANCER = "user"


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    MEETING_SCHEDULED = "MeetingScheduled"
    MEETING_COMPLETED = "MeetingCompleted"
    HIRED = "Hired"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.HIRED, ApplicationStatus.REJECTED)


class InterviewStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class ProjectStatus(str, Enum):
    ONGOING = "Ongoing"
    COMPLETED = "Completed"


class TaskStatus(str, Enum):
    TODO = "To-Do"
    IN_PROGRESS = "In-Progress"
    DONE = "Done"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentProvider(str, Enum):
    CARD = "card"
    WALLET = "wallet"


class Badge(str, Enum):
    NONE = "none"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class ApplicationEvent(str, Enum):
    SCHEDULE_INTERVIEW = "scheduleInterview"
    REJECT = "rejectApplication"
    INTERVIEW_COMPLETED = "interviewCompleted"
    INTERVIEW_FAILED = "interviewFailed"
    CANCEL_INTERVIEW = "cancelInterview"
    CONFIRM_HIRE = "confirmHire"


_NON_TERMINAL = (
    ApplicationStatus.PENDING,
    ApplicationStatus.MEETING_SCHEDULED,
    ApplicationStatus.MEETING_COMPLETED,
)

APPLICATION_TRANSITIONS: dict[tuple[ApplicationStatus, ApplicationEvent], ApplicationStatus] = {
    (ApplicationStatus.PENDING, ApplicationEvent.SCHEDULE_INTERVIEW): ApplicationStatus.MEETING_SCHEDULED,
    (ApplicationStatus.MEETING_SCHEDULED, ApplicationEvent.INTERVIEW_COMPLETED): ApplicationStatus.MEETING_COMPLETED,
    (ApplicationStatus.MEETING_SCHEDULED, ApplicationEvent.INTERVIEW_FAILED): ApplicationStatus.REJECTED,
    (ApplicationStatus.MEETING_COMPLETED, ApplicationEvent.CONFIRM_HIRE): ApplicationStatus.HIRED,
    **{(status, ApplicationEvent.REJECT): ApplicationStatus.REJECTED for status in _NON_TERMINAL},
    **{(status, ApplicationEvent.CANCEL_INTERVIEW): ApplicationStatus.PENDING for status in _NON_TERMINAL},
}

INTERVIEW_TRANSITIONS: dict[InterviewStatus, frozenset[InterviewStatus]] = {
    InterviewStatus.SCHEDULED: frozenset(
        {InterviewStatus.COMPLETED, InterviewStatus.FAILED, InterviewStatus.CANCELLED}
    ),
    InterviewStatus.COMPLETED: frozenset(),
    InterviewStatus.FAILED: frozenset(),
    InterviewStatus.CANCELLED: frozenset(),
}


def next_application_status(current, event: ApplicationEvent) -> ApplicationStatus:
    """Return the status an application moves to when ``event`` happens.

    Raises:
        InvalidStateError: If the event is not allowed from ``current``
    """
    try:
        status = ApplicationStatus(current)
    except ValueError:
        raise InvalidStateError(f"Unknown application status: {current!r}") from None
    target = APPLICATION_TRANSITIONS.get((status, event))
    if target is None:
        raise InvalidStateError(
            f"Cannot apply {event.value} to an application in status {status.value}"
        )
    return target


def check_interview_transition(current, target: InterviewStatus) -> None:
    """Raise InvalidStateError unless an interview may move from ``current`` to ``target``."""
    try:
        status = InterviewStatus(current)
    except ValueError:
        raise InvalidStateError(f"Unknown interview status: {current!r}") from None
    if target not in INTERVIEW_TRANSITIONS[status]:
        raise InvalidStateError(
            f"Interview in status {status.value} cannot become {target.value}"
        )
