"""
Application Lifecycle Engine

Coordinates an application from apply to hire: interview scheduling through
the calendar adapter, interview outcomes, rejection and hiring. Every
transition follows the same order:

1. load the records and check the actor against the job's hirer
2. compute the target status from the transition table
3. write it conditionally on the status that was just read
4. only then notify

A conditional write that matches no row means another request changed the
record in between; that surfaces as ConflictError.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Callable

from karya.shared.errors import (
    ConflictError,
    CredentialMissingError,
    ExternalProviderError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from .states import (
    ApplicationEvent,
    ApplicationStatus,
    InterviewStatus,
    Role,
    check_interview_transition,
    next_application_status,
)

logger = logging.getLogger(__name__)

DEFAULT_MEETING_DURATION_MINUTES = 60


def _utc_now() -> datetime:
    return datetime.now(UTC)


def coerce_datetime(value, field: str = "scheduled_time") -> datetime:
    """Accept a datetime or ISO-8601 string; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid {field}: {value!r}") from None
    else:
        raise ValidationError(f"{field} is required")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def display_name(user: dict[str, Any] | None) -> str:
    if not user:
        return "A user"
    name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
    return name or user.get("email") or "A user"


class ApplicationLifecycleEngine:
    """The single writer of application and interview status."""

    def __init__(
        self,
        store,
        dispatcher,
        calendar=None,
        now_fn: Callable[[], datetime] = _utc_now,
        meeting_duration_minutes: int = DEFAULT_MEETING_DURATION_MINUTES,
    ):
        """
        Initialize the lifecycle engine.

        Args:
            store: Entity store
            dispatcher: NotificationDispatcher used after each committed transition
            calendar: Calendar adapter (GoogleCalendarClient or compatible)
            now_fn: Clock returning an aware datetime
            meeting_duration_minutes: Length of every interview meeting
        """
        if not store:
            raise ValueError("Store is required")
        if not dispatcher:
            raise ValueError("Dispatcher is required")
        self.store = store
        self.dispatcher = dispatcher
        self.calendar = calendar
        self.now_fn = now_fn
        self.meeting_duration_minutes = meeting_duration_minutes

    # Loading and guards

    def _load(self, application_id: int) -> tuple[dict[str, Any], dict[str, Any]]:
        application = self.store.get_application(application_id)
        if not application:
            raise NotFoundError("Application", application_id)
        job = self.store.get_job(application["job_id"])
        if not job:
            raise NotFoundError("Job", application["job_id"])
        return application, job

    def _load_interview(self, interview_id: int):
        interview = self.store.get_interview(interview_id)
        if not interview:
            raise NotFoundError("Interview", interview_id)
        application, job = self._load(interview["application_id"])
        return interview, application, job

    @staticmethod
    def _require_hirer(job: dict[str, Any], actor_id: int) -> None:
        if job["hirer_id"] != actor_id:
            raise PermissionDeniedError("Only the hirer who posted this job can do that")

    @staticmethod
    def _require_interview_owner(interview: dict[str, Any], actor_id: int) -> None:
        if interview["created_by"] != actor_id:
            raise PermissionDeniedError("Only the hirer who scheduled this interview can do that")

    def _require_future(self, when: datetime) -> None:
        if when <= self.now_fn():
            raise ValidationError("Interview time must be in the future")

    def _move_application(
        self, application: dict[str, Any], event: ApplicationEvent
    ) -> dict[str, Any]:
        """Apply ``event`` to ``application`` with a write conditional on its current status."""
        target = next_application_status(application["status"], event)
        updated = self.store.update_application_status(
            application["application_id"], target, expected=(application["status"],)
        )
        if updated is None:
            raise ConflictError(
                f"Application {application['application_id']} was changed by another request"
            )
        logger.info(
            f"Application {application['application_id']}: "
            f"{application['status']} -> {target.value} ({event.value})"
        )
        return updated

    def _calendar_credential(self, hirer_id: int) -> dict[str, Any] | None:
        hirer = self.store.get_user(hirer_id) or {}
        return hirer.get("google_tokens")

    def _persist_credential(self, hirer_id: int, result) -> None:
        if result is not None and result.credential_update:
            self.store.update_user_google_tokens(hirer_id, result.credential_update)
            logger.info(f"Stored refreshed calendar credential for user {hirer_id}")

    def _require_calendar(self):
        if self.calendar is None:
            raise ExternalProviderError("google_calendar", "calendar integration is not configured")
        return self.calendar

    # Apply

    def apply_to_job(
        self,
        actor_id: int,
        role: str,
        job_id: int,
        cover_letter: str,
        resume_path: str | None = None,
    ) -> dict[str, Any]:
        """
        Submit an application for a job; it starts Pending.

        Raises:
            PermissionDeniedError: If the actor is not a freelancer
            ValidationError: If the cover letter is missing
            NotFoundError: If the job does not exist
            ConflictError: If the freelancer already applied to this job
        """
        if role != Role.FREELANCER.value:
            raise PermissionDeniedError("Only freelancers can apply to jobs")
        if not cover_letter or not cover_letter.strip():
            raise ValidationError("Cover letter is required")
        job = self.store.get_job(job_id)
        if not job:
            raise NotFoundError("Job", job_id)
        if self.store.find_application(actor_id, job_id):
            raise ConflictError("You have already applied to this job")

        application = self.store.insert_application(
            user_id=actor_id,
            job_id=job_id,
            cover_letter=cover_letter.strip(),
            resume_path=resume_path,
            status=ApplicationStatus.PENDING,
        )
        logger.info(f"User {actor_id} applied to job {job_id}")

        applicant = self.store.get_user(actor_id)
        self.dispatcher.notify(
            job["hirer_id"],
            f"{display_name(applicant)} applied for \"{job['title']}\".",
            event="applicationReceived",
            email_subject=f"New application for {job['title']}",
            application_id=application["application_id"],
        )
        return application

    # Interviews

    def schedule_interview(
        self, actor_id: int, application_id: int, scheduled_time
    ) -> dict[str, Any]:
        """
        Schedule an interview for a Pending application.

        The application is claimed (Pending -> MeetingScheduled) before the
        calendar event is created, so only one concurrent request reaches the
        provider. If the provider call fails the claim is released back to
        Pending and the error surfaces.

        Raises:
            ValidationError: If the time is missing, malformed or not in the future
            PermissionDeniedError: If the actor is not the job's hirer
            InvalidStateError: If the application is not Pending or already has
                a scheduled interview
            CredentialError: If the hirer's calendar credential is unusable
            ExternalProviderError: If the calendar provider fails
        """
        when = coerce_datetime(scheduled_time)
        self._require_future(when)
        application, job = self._load(application_id)
        self._require_hirer(job, actor_id)
        next_application_status(application["status"], ApplicationEvent.SCHEDULE_INTERVIEW)
        if self.store.find_interviews(application_id, InterviewStatus.SCHEDULED):
            raise InvalidStateError("An interview is already scheduled for this application")

        hirer = self.store.get_user(actor_id) or {}
        freelancer = self.store.get_user(application["user_id"]) or {}
        credential = hirer.get("google_tokens")
        if not credential:
            raise CredentialMissingError(
                "Google authentication required. Please authenticate with Google first."
            )
        calendar = self._require_calendar()

        claimed = self._move_application(application, ApplicationEvent.SCHEDULE_INTERVIEW)
        try:
            result = calendar.schedule_meeting(
                credential,
                attendees=[freelancer.get("email"), hirer.get("email")],
                start_time=when,
                duration_minutes=self.meeting_duration_minutes,
                subject=f"Interview for {job['title']}",
                description=(
                    f"Interview between {display_name(hirer)} and {display_name(freelancer)} "
                    f"for the position of {job['title']}."
                ),
                request_id=f"{application_id}-{int(when.timestamp())}",
            )
        except Exception:
            released = self.store.update_application_status(
                application_id,
                ApplicationStatus.PENDING,
                expected=(ApplicationStatus.MEETING_SCHEDULED,),
            )
            logger.warning(
                f"Calendar scheduling failed for application {application_id}; "
                f"claim released={released is not None}"
            )
            raise

        self._persist_credential(actor_id, result)
        interview = self.store.insert_interview(
            application_id=application_id,
            scheduled_time=when,
            meet_link=result.meet_link,
            google_event_id=result.event_id,
            status=InterviewStatus.SCHEDULED,
            created_by=actor_id,
        )
        logger.info(f"Interview {interview['interview_id']} scheduled for application {application_id}")

        self.dispatcher.notify(
            application["user_id"],
            f"Your interview for \"{job['title']}\" is scheduled for {when.isoformat()}.",
            event="interviewScheduled",
            email_subject=f"Interview scheduled: {job['title']}",
            email_body=(
                f"Your interview for the position of {job['title']} has been scheduled.\n\n"
                f"Time: {when.isoformat()}\nMeeting link: {result.meet_link}"
            ),
            application_id=application_id,
            interview_id=interview["interview_id"],
            meet_link=result.meet_link,
            status=claimed["status"],
        )
        return interview

    def reschedule_interview(
        self, actor_id: int, interview_id: int, scheduled_time
    ) -> dict[str, Any]:
        """
        Move a Scheduled interview to a new future time; application status is unchanged.

        The new time is stored before the calendar event is moved. If the
        provider call fails the previous time is written back and the error
        surfaces.
        """
        when = coerce_datetime(scheduled_time)
        self._require_future(when)
        interview, application, job = self._load_interview(interview_id)
        self._require_interview_owner(interview, actor_id)
        if interview["status"] != InterviewStatus.SCHEDULED.value:
            raise InvalidStateError(f"Only scheduled interviews can be rescheduled (is {interview['status']})")

        updated = self.store.update_interview_schedule(
            interview_id, when, expected=InterviewStatus.SCHEDULED
        )
        if updated is None:
            raise ConflictError(f"Interview {interview_id} was changed by another request")

        if interview.get("google_event_id"):
            credential = self._calendar_credential(actor_id)
            if credential:
                try:
                    result = self._require_calendar().reschedule_meeting(
                        credential, interview["google_event_id"], when, self.meeting_duration_minutes
                    )
                except Exception:
                    restored = self.store.update_interview_schedule(
                        interview_id, interview["scheduled_time"], expected=InterviewStatus.SCHEDULED
                    )
                    logger.warning(
                        f"Calendar reschedule failed for interview {interview_id}; "
                        f"previous time restored={restored is not None}"
                    )
                    raise
                self._persist_credential(actor_id, result)
            else:
                logger.warning(
                    f"No calendar credential for user {actor_id}; "
                    f"event for interview {interview_id} not moved"
                )

        self.dispatcher.notify(
            application["user_id"],
            f"Your interview for \"{job['title']}\" was rescheduled to {when.isoformat()}.",
            event="interviewRescheduled",
            email_subject=f"Interview rescheduled: {job['title']}",
            email_body=(
                f"Your interview for the position of {job['title']} has been rescheduled.\n\n"
                f"New time: {when.isoformat()}\nMeeting link: {updated.get('meet_link')}"
            ),
            application_id=application["application_id"],
            interview_id=interview_id,
        )
        return updated

    def cancel_interview(self, actor_id: int, interview_id: int, reason: str) -> dict[str, Any]:
        """
        Cancel a Scheduled interview and return its application to Pending.

        Removing the calendar event is attempted after the cancellation is
        stored; a provider failure there is only logged.

        Raises:
            ValidationError: If no reason is given
            PermissionDeniedError: If the actor did not schedule the interview
            InvalidStateError: If the interview is not Scheduled or the
                application is already Hired or Rejected
        """
        if not reason or not reason.strip():
            raise ValidationError("Cancel reason is required")
        interview, application, job = self._load_interview(interview_id)
        self._require_interview_owner(interview, actor_id)
        check_interview_transition(interview["status"], InterviewStatus.CANCELLED)
        next_application_status(application["status"], ApplicationEvent.CANCEL_INTERVIEW)

        cancelled = self.store.update_interview_status(
            interview_id,
            InterviewStatus.CANCELLED,
            expected=InterviewStatus.SCHEDULED,
            cancel_reason=reason.strip(),
        )
        if cancelled is None:
            raise ConflictError(f"Interview {interview_id} was changed by another request")
        self._move_application(application, ApplicationEvent.CANCEL_INTERVIEW)

        if interview.get("google_event_id") and self.calendar is not None:
            self._drop_calendar_event(actor_id, interview)

        self.dispatcher.notify(
            application["user_id"],
            f"Your interview for \"{job['title']}\" was cancelled. Reason: {reason.strip()}",
            event="interviewCancelled",
            email_subject=f"Interview cancelled: {job['title']}",
            application_id=application["application_id"],
            interview_id=interview_id,
        )
        return cancelled

    def mark_interview_status(self, actor_id: int, interview_id: int, status) -> dict[str, Any]:
        """
        Record the outcome of a Scheduled interview.

        Completed moves the application to MeetingCompleted; Failed rejects it.
        """
        try:
            outcome = InterviewStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid interview status: {status!r}") from None
        if outcome not in (InterviewStatus.COMPLETED, InterviewStatus.FAILED):
            raise ValidationError("Interview status must be Completed or Failed")

        interview, application, job = self._load_interview(interview_id)
        self._require_hirer(job, actor_id)
        return self.record_interview_outcome(interview, application, job, outcome)

    def complete_stale_interview(self, interview_id: int) -> dict[str, Any]:
        """Complete an interview whose meeting window has passed; no actor check.

        Raises:
            InvalidStateError: If the interview or its application already moved on
            ConflictError: If a concurrent request changed the interview first
        """
        interview, application, job = self._load_interview(interview_id)
        return self.record_interview_outcome(interview, application, job, InterviewStatus.COMPLETED)

    def record_interview_outcome(
        self,
        interview: dict[str, Any],
        application: dict[str, Any],
        job: dict[str, Any],
        outcome: InterviewStatus,
    ) -> dict[str, Any]:
        """Write an interview outcome and the matching application move, then notify both parties.

        Used by the hirer path and by the reconciliation sweep; authorization
        is the caller's concern.
        """
        interview_id = interview["interview_id"]
        check_interview_transition(interview["status"], outcome)
        event = (
            ApplicationEvent.INTERVIEW_COMPLETED
            if outcome == InterviewStatus.COMPLETED
            else ApplicationEvent.INTERVIEW_FAILED
        )
        next_application_status(application["status"], event)

        updated = self.store.update_interview_status(
            interview_id, outcome, expected=InterviewStatus.SCHEDULED
        )
        if updated is None:
            raise ConflictError(f"Interview {interview_id} was changed by another request")
        self._move_application(application, event)

        if outcome == InterviewStatus.COMPLETED:
            applicant_msg = f"Your interview for \"{job['title']}\" has been marked as completed."
            hirer_msg = f"The interview for \"{job['title']}\" is completed. You can now make a hiring decision."
        else:
            applicant_msg = f"Your interview for \"{job['title']}\" was not successful."
            hirer_msg = f"The interview for \"{job['title']}\" was marked as failed."
        refs = {"application_id": application["application_id"], "interview_id": interview_id}
        self.dispatcher.notify(application["user_id"], applicant_msg, event="interviewStatusUpdated", **refs)
        self.dispatcher.notify(job["hirer_id"], hirer_msg, event="interviewStatusUpdated", **refs)
        return updated

    # Decisions

    def reject_application(self, actor_id: int, application_id: int) -> dict[str, Any]:
        """
        Reject a non-terminal application.

        Any interview still Scheduled for it is cancelled; removing its
        calendar event is attempted after the rejection is stored and a
        provider failure there is only logged.
        """
        application, job = self._load(application_id)
        self._require_hirer(job, actor_id)
        updated = self._move_application(application, ApplicationEvent.REJECT)

        for interview in self.store.find_interviews(application_id, InterviewStatus.SCHEDULED):
            cancelled = self.store.update_interview_status(
                interview["interview_id"],
                InterviewStatus.CANCELLED,
                expected=InterviewStatus.SCHEDULED,
                cancel_reason="Application rejected",
            )
            if cancelled and interview.get("google_event_id") and self.calendar is not None:
                self._drop_calendar_event(interview["created_by"], interview)

        self.dispatcher.notify(
            application["user_id"],
            f"Your application for \"{job['title']}\" was not selected.",
            event="applicationRejected",
            email_subject=f"Update on your application for {job['title']}",
            application_id=application_id,
        )
        return updated

    def _drop_calendar_event(self, hirer_id: int, interview: dict[str, Any]) -> None:
        credential = self._calendar_credential(hirer_id)
        if not credential:
            return
        try:
            result = self.calendar.cancel_meeting(credential, interview["google_event_id"])
            self._persist_credential(hirer_id, result)
        except Exception as e:
            logger.warning(
                f"Could not remove calendar event for interview {interview['interview_id']}: {e}"
            )

    def confirm_hire(self, actor_id: int, application_id: int) -> dict[str, Any]:
        """
        Hire the applicant after a completed interview.

        Raises:
            InvalidStateError: If already hired, not MeetingCompleted, or no
                completed interview exists
        """
        application, job = self._load(application_id)
        self._require_hirer(job, actor_id)
        if application["status"] == ApplicationStatus.HIRED.value:
            raise InvalidStateError("This applicant is already hired")
        next_application_status(application["status"], ApplicationEvent.CONFIRM_HIRE)
        if not self.store.find_interviews(application_id, InterviewStatus.COMPLETED):
            raise InvalidStateError("A completed interview is required before hiring")

        updated = self._move_application(application, ApplicationEvent.CONFIRM_HIRE)
        self.dispatcher.notify(
            application["user_id"],
            f"Congratulations! You have been hired for \"{job['title']}\".",
            event="applicationHired",
            email_subject=f"You're hired: {job['title']}",
            application_id=application_id,
        )
        return updated

    # Read views

    def get_application(self, actor_id: int, application_id: int) -> dict[str, Any]:
        application, job = self._load(application_id)
        if actor_id not in (application["user_id"], job["hirer_id"]):
            raise PermissionDeniedError("You cannot view this application")
        return application

    def list_applications_for_hirer(self, hirer_id: int, status=None) -> list[dict[str, Any]]:
        if status is not None:
            try:
                status = ApplicationStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid application status: {status!r}") from None
        return self.store.list_applications_for_hirer(hirer_id, status)

    def list_applications_for_freelancer(self, user_id: int) -> list[dict[str, Any]]:
        return self.store.list_applications_for_freelancer(user_id)

    def list_interviews(self, user_id: int) -> list[dict[str, Any]]:
        return self.store.list_interviews_for_user(user_id)
