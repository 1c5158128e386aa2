"""
Project Service

Creates a project from a completed interview of a hired applicant, and
manages its task list. A project is completed by a landed payment or by the
hirer's explicit mark-complete action, never by a task update.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Callable

from karya.lifecycle.lifecycle_engine import coerce_datetime
from karya.lifecycle.states import (
    ApplicationStatus,
    InterviewStatus,
    ProjectStatus,
    Role,
    TaskStatus,
)
from karya.shared.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from karya.shared.money import parse_amount

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ProjectService:
    """Service for projects and their tasks."""

    def __init__(self, store, dispatcher, now_fn: Callable[[], datetime] = _utc_now):
        if not store:
            raise ValueError("Store is required")
        self.store = store
        self.dispatcher = dispatcher
        self.now_fn = now_fn

    def _get(self, project_id: int) -> dict[str, Any]:
        project = self.store.get_project(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    def _require_project_hirer(project: dict[str, Any], actor_id: int) -> None:
        if project["hirer_id"] != actor_id:
            raise PermissionDeniedError("Only the project's hirer can do that")

    @staticmethod
    def _require_participant(project: dict[str, Any], actor_id: int) -> None:
        if actor_id not in (project["hirer_id"], project["freelancer_id"]):
            raise PermissionDeniedError("You are not a participant in this project")

    def create_project(
        self,
        actor_id: int,
        interview_id: int,
        title: str,
        payment,
        description: str | None = None,
        duration: int | None = None,
        deadline=None,
    ) -> dict[str, Any]:
        """
        Create the project for a hired applicant's completed interview.

        The interview's ``project_created`` flag is claimed with a conditional
        write before the project row is inserted; a second attempt finds the
        flag set and fails.

        Raises:
            ValidationError: Missing title or a non-positive payment
            PermissionDeniedError: If the actor did not create the interview
            InvalidStateError: Interview not Completed, project already
                created, or application not Hired
        """
        if not title or not title.strip():
            raise ValidationError("Project title is required")
        agreed = parse_amount(payment)
        due = coerce_datetime(deadline, "deadline") if deadline else None
        if duration is not None:
            try:
                duration = int(duration)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid duration: {duration!r}") from None

        interview = self.store.get_interview(interview_id)
        if not interview:
            raise NotFoundError("Interview", interview_id)
        if interview["created_by"] != actor_id:
            raise PermissionDeniedError("Only the hirer who created the interview can create a project")
        if interview["status"] != InterviewStatus.COMPLETED.value:
            raise InvalidStateError("Interview must be completed before creating a project")
        if interview["project_created"]:
            raise InvalidStateError("A project has already been created for this interview")

        application = self.store.get_application(interview["application_id"])
        if not application:
            raise NotFoundError("Application", interview["application_id"])
        if application["status"] != ApplicationStatus.HIRED.value:
            raise InvalidStateError("The applicant must be hired before creating a project")

        if self.store.mark_project_created(interview_id) is None:
            raise InvalidStateError("A project has already been created for this interview")

        try:
            project = self.store.insert_project(
                title=title.strip(),
                description=description,
                hirer_id=actor_id,
                freelancer_id=application["user_id"],
                application_id=application["application_id"],
                interview_id=interview_id,
                status=ProjectStatus.ONGOING,
                duration=duration,
                deadline=due,
                payment=agreed,
            )
        except Exception:
            self.store.clear_project_created(interview_id)
            raise

        logger.info(f"Project {project['project_id']} created from interview {interview_id}")
        self.dispatcher.notify(
            application["user_id"],
            f"A new project \"{project['title']}\" has been created for you.",
            event="projectCreated",
            email_subject=f"New project: {project['title']}",
            email_body=(
                f"A new project \"{project['title']}\" has been created for you.\n\n"
                f"Agreed payment: {agreed}"
                + (f"\nDeadline: {due.isoformat()}" if due else "")
            ),
            application_id=application["application_id"],
            interview_id=interview_id,
            project_id=project["project_id"],
        )
        return project

    def add_task(
        self,
        actor_id: int,
        project_id: int,
        title: str,
        description: str | None = None,
        deadline=None,
        files: list[str] | None = None,
    ) -> dict[str, Any]:
        """Append a To-Do task to an ongoing project (hirer only)."""
        if not title or not title.strip():
            raise ValidationError("Task title is required")
        due = coerce_datetime(deadline, "deadline") if deadline else None
        project = self._get(project_id)
        self._require_project_hirer(project, actor_id)
        if project["status"] == ProjectStatus.COMPLETED.value:
            raise InvalidStateError("Cannot add tasks to a completed project")

        task = self.store.insert_task(
            project_id=project_id,
            title=title.strip(),
            description=description,
            status=TaskStatus.TODO,
            deadline=due,
            files=files or [],
        )
        self.dispatcher.notify(
            project["freelancer_id"],
            f"New task \"{task['title']}\" added to \"{project['title']}\".",
            event="taskAdded",
            project_id=project_id,
        )
        return task

    def update_task_status(
        self, actor_id: int, project_id: int, task_id: int, status
    ) -> dict[str, Any]:
        """Set a task's status; either participant may move it to any status."""
        try:
            new_status = TaskStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid task status: {status!r}") from None
        project = self._get(project_id)
        self._require_participant(project, actor_id)

        completed_at = self.now_fn() if new_status == TaskStatus.DONE else None
        task = self.store.update_task_status(project_id, task_id, new_status, completed_at)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def mark_complete(self, actor_id: int, project_id: int) -> dict[str, Any]:
        """Complete an ongoing project without a payment (hirer only)."""
        project = self._get(project_id)
        self._require_project_hirer(project, actor_id)
        if project["status"] == ProjectStatus.COMPLETED.value:
            raise InvalidStateError("Project is already completed")

        updated = self.store.update_project_status(
            project_id, ProjectStatus.COMPLETED, expected=ProjectStatus.ONGOING
        )
        if updated is None:
            raise ConflictError(f"Project {project_id} was changed by another request")

        self.dispatcher.notify(
            project["freelancer_id"],
            f"Project \"{project['title']}\" was marked as completed.",
            event="projectCompleted",
            project_id=project_id,
        )
        return updated

    def get_project(self, actor_id: int, project_id: int) -> dict[str, Any]:
        project = self._get(project_id)
        self._require_participant(project, actor_id)
        return project

    def list_projects(self, user_id: int, role: str, status=None) -> list[dict[str, Any]]:
        """Projects where the user is the hirer (hirers) or the freelancer (everyone else)."""
        if status is not None:
            try:
                status = ProjectStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid project status: {status!r}") from None
        if role == Role.HIRER.value:
            return self.store.list_projects(hirer_id=user_id, status=status)
        return self.store.list_projects(freelancer_id=user_id, status=status)
