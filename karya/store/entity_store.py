"""Entity store for the application lifecycle records.

Reads return plain dictionaries keyed by column name. Writes that change a
status are conditional and return ``None`` when the expected current status
no longer holds, which callers turn into a ConflictError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from karya.shared.database import Database
from karya.shared.errors import ConflictError

from . import queries as q

logger = logging.getLogger(__name__)


def _value(status):
    """Unwrap str-valued enums so psycopg2 sees plain strings."""
    return getattr(status, "value", status)


def _fetchone(cur) -> dict[str, Any] | None:
    row = cur.fetchone()
    if not row:
        return None
    columns = [desc[0] for desc in cur.description]
    return dict(zip(columns, row))


def _fetchall(cur) -> list[dict[str, Any]]:
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


class EntityStore:
    """PostgreSQL-backed store for users, jobs, applications, interviews,
    projects (with tasks), payments, reviews and notifications."""

    def __init__(self, database: Database):
        """Initialize the entity store.

        Args:
            database: Database connection interface (implements Database protocol)
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def _one(self, sql: str, params: tuple) -> dict[str, Any] | None:
        with self.db.get_cursor() as cur:
            cur.execute(sql, params)
            return _fetchone(cur)

    def _all(self, sql: str, params: tuple) -> list[dict[str, Any]]:
        with self.db.get_cursor() as cur:
            cur.execute(sql, params)
            return _fetchall(cur)

    # Users

    def get_user(self, user_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_USER, (user_id,))

    def update_user_google_tokens(self, user_id: int, tokens: dict[str, Any] | None) -> bool:
        payload = Json(tokens) if tokens is not None else None
        return self._one(q.UPDATE_USER_GOOGLE_TOKENS, (payload, user_id)) is not None

    def update_user_badge(self, user_id: int, badge) -> bool:
        return self._one(q.UPDATE_USER_BADGE, (_value(badge), user_id)) is not None

    # Jobs

    def get_job(self, job_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_JOB, (job_id,))

    # Applications

    def insert_application(
        self,
        user_id: int,
        job_id: int,
        cover_letter: str,
        resume_path: str | None,
        status,
    ) -> dict[str, Any]:
        try:
            return self._one(
                q.INSERT_APPLICATION, (user_id, job_id, cover_letter, resume_path, _value(status))
            )
        except pg_errors.UniqueViolation:
            raise ConflictError(f"User {user_id} has already applied to job {job_id}") from None

    def get_application(self, application_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_APPLICATION, (application_id,))

    def find_application(self, user_id: int, job_id: int) -> dict[str, Any] | None:
        return self._one(q.FIND_APPLICATION_BY_USER_AND_JOB, (user_id, job_id))

    def update_application_status(
        self, application_id: int, new_status, expected: Iterable
    ) -> dict[str, Any] | None:
        """Move an application to ``new_status`` if it is currently in one of ``expected``."""
        expected_values = [_value(s) for s in expected]
        return self._one(
            q.UPDATE_APPLICATION_STATUS, (_value(new_status), application_id, expected_values)
        )

    def list_applications_for_hirer(self, hirer_id: int, status=None) -> list[dict[str, Any]]:
        status_value = _value(status) if status is not None else None
        return self._all(q.LIST_APPLICATIONS_FOR_HIRER, (hirer_id, status_value, status_value))

    def list_applications_for_freelancer(self, user_id: int) -> list[dict[str, Any]]:
        return self._all(q.LIST_APPLICATIONS_FOR_FREELANCER, (user_id,))

    # Interviews

    def insert_interview(
        self,
        application_id: int,
        scheduled_time: datetime,
        meet_link: str,
        google_event_id: str | None,
        status,
        created_by: int,
    ) -> dict[str, Any]:
        return self._one(
            q.INSERT_INTERVIEW,
            (application_id, scheduled_time, meet_link, google_event_id, _value(status), created_by),
        )

    def get_interview(self, interview_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_INTERVIEW, (interview_id,))

    def find_interviews(self, application_id: int, status=None) -> list[dict[str, Any]]:
        status_value = _value(status) if status is not None else None
        return self._all(
            q.FIND_INTERVIEWS_FOR_APPLICATION, (application_id, status_value, status_value)
        )

    def update_interview_status(
        self, interview_id: int, new_status, expected, cancel_reason: str | None = None
    ) -> dict[str, Any] | None:
        return self._one(
            q.UPDATE_INTERVIEW_STATUS,
            (_value(new_status), cancel_reason, interview_id, _value(expected)),
        )

    def update_interview_schedule(
        self, interview_id: int, scheduled_time: datetime, expected
    ) -> dict[str, Any] | None:
        return self._one(
            q.UPDATE_INTERVIEW_SCHEDULE, (scheduled_time, interview_id, _value(expected))
        )

    def mark_project_created(self, interview_id: int) -> dict[str, Any] | None:
        """Flip ``project_created`` on a completed interview; None if already flipped."""
        return self._one(q.MARK_INTERVIEW_PROJECT_CREATED, (interview_id,))

    def clear_project_created(self, interview_id: int) -> dict[str, Any] | None:
        return self._one(q.CLEAR_INTERVIEW_PROJECT_CREATED, (interview_id,))

    def find_stale_interviews(self, cutoff: datetime, limit: int = 500) -> list[dict[str, Any]]:
        """Scheduled interviews whose start time is at or before ``cutoff``."""
        return self._all(q.FIND_STALE_INTERVIEWS, (cutoff, limit))

    def list_interviews_for_user(self, user_id: int) -> list[dict[str, Any]]:
        return self._all(q.LIST_INTERVIEWS_FOR_USER, (user_id, user_id))

    # Projects and tasks

    def insert_project(
        self,
        title: str,
        description: str | None,
        hirer_id: int,
        freelancer_id: int,
        application_id: int,
        interview_id: int,
        status,
        duration: int | None,
        deadline: datetime | None,
        payment: Decimal,
    ) -> dict[str, Any]:
        project = self._one(
            q.INSERT_PROJECT,
            (
                title,
                description,
                hirer_id,
                freelancer_id,
                application_id,
                interview_id,
                _value(status),
                duration,
                deadline,
                payment,
            ),
        )
        project["tasks"] = []
        return project

    def get_project(self, project_id: int) -> dict[str, Any] | None:
        project = self._one(q.GET_PROJECT, (project_id,))
        if project:
            self._attach_tasks([project])
        return project

    def list_projects(
        self, hirer_id: int | None = None, freelancer_id: int | None = None, status=None
    ) -> list[dict[str, Any]]:
        status_value = _value(status) if status is not None else None
        projects = self._all(
            q.LIST_PROJECTS,
            (hirer_id, hirer_id, freelancer_id, freelancer_id, status_value, status_value),
        )
        self._attach_tasks(projects)
        return projects

    def count_projects(self, hirer_id: int | None = None, freelancer_id: int | None = None) -> int:
        with self.db.get_cursor() as cur:
            cur.execute(q.COUNT_PROJECTS, (hirer_id, hirer_id, freelancer_id, freelancer_id))
            row = cur.fetchone()
            return int(row[0]) if row else 0

    def update_project_status(self, project_id: int, new_status, expected) -> dict[str, Any] | None:
        project = self._one(
            q.UPDATE_PROJECT_STATUS, (_value(new_status), project_id, _value(expected))
        )
        if project:
            self._attach_tasks([project])
        return project

    def _attach_tasks(self, projects: list[dict[str, Any]]) -> None:
        if not projects:
            return
        ids = [p["project_id"] for p in projects]
        tasks = self._all(q.LIST_TASKS_FOR_PROJECTS, (ids,))
        by_project: dict[int, list[dict[str, Any]]] = {pid: [] for pid in ids}
        for task in tasks:
            by_project.setdefault(task["project_id"], []).append(task)
        for project in projects:
            project["tasks"] = by_project.get(project["project_id"], [])

    def insert_task(
        self,
        project_id: int,
        title: str,
        description: str | None,
        status,
        deadline: datetime | None,
        files: list[str],
    ) -> dict[str, Any]:
        return self._one(
            q.INSERT_TASK, (project_id, title, description, _value(status), deadline, list(files))
        )

    def update_task_status(
        self, project_id: int, task_id: int, status, completed_at: datetime | None
    ) -> dict[str, Any] | None:
        """Set a task's status; a repeated status keeps the stored completed_at."""
        value = _value(status)
        return self._one(
            q.UPDATE_TASK_STATUS, (value, completed_at, completed_at, value, project_id, task_id)
        )

    # Payments

    def insert_payment(
        self,
        hirer_id: int,
        freelancer_id: int,
        project_id: int,
        amount: Decimal,
        currency: str,
        provider,
        transaction_id: str | None,
        wallet_id: str | None,
        status,
    ) -> dict[str, Any]:
        return self._one(
            q.INSERT_PAYMENT,
            (
                hirer_id,
                freelancer_id,
                project_id,
                amount,
                currency,
                _value(provider),
                transaction_id,
                wallet_id,
                _value(status),
            ),
        )

    def get_payment(self, payment_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_PAYMENT, (payment_id,))

    def find_payment_by_transaction(self, provider, transaction_id: str) -> dict[str, Any] | None:
        return self._one(q.FIND_PAYMENT_BY_TRANSACTION, (_value(provider), transaction_id))

    def update_payment_transaction(self, payment_id: int, transaction_id: str) -> dict[str, Any] | None:
        try:
            return self._one(q.UPDATE_PAYMENT_TRANSACTION, (transaction_id, payment_id))
        except pg_errors.UniqueViolation:
            raise ConflictError(
                f"Transaction {transaction_id} already belongs to another payment"
            ) from None

    def settle_payment(
        self, payment_id: int, new_status, transaction_id: str | None = None
    ) -> dict[str, Any] | None:
        """Move a pending payment to completed/failed; None if it was not pending.

        Raises:
            ConflictError: If ``transaction_id`` is already attached to another payment
        """
        try:
            return self._one(q.SETTLE_PAYMENT, (_value(new_status), transaction_id, payment_id))
        except pg_errors.UniqueViolation:
            raise ConflictError(
                f"Transaction {transaction_id} already belongs to another payment"
            ) from None

    def list_payments(
        self,
        hirer_id: int | None = None,
        freelancer_id: int | None = None,
        project_id: int | None = None,
        status=None,
    ) -> list[dict[str, Any]]:
        status_value = _value(status) if status is not None else None
        return self._all(
            q.LIST_PAYMENTS,
            (
                hirer_id,
                hirer_id,
                freelancer_id,
                freelancer_id,
                project_id,
                project_id,
                status_value,
                status_value,
            ),
        )

    # Reviews

    def insert_review(
        self,
        project_id: int,
        payment_id: int,
        reviewer_id: int,
        reviewed_user_id: int,
        rating: int,
        comment: str | None,
    ) -> dict[str, Any]:
        try:
            return self._one(
                q.INSERT_REVIEW,
                (project_id, payment_id, reviewer_id, reviewed_user_id, rating, comment),
            )
        except pg_errors.UniqueViolation:
            raise ConflictError(
                f"User {reviewer_id} already reviewed user {reviewed_user_id} for project {project_id}"
            ) from None

    def get_review(self, review_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_REVIEW, (review_id,))

    def find_review(
        self, project_id: int, reviewer_id: int, reviewed_user_id: int
    ) -> dict[str, Any] | None:
        return self._one(q.FIND_REVIEW, (project_id, reviewer_id, reviewed_user_id))

    def delete_review(self, review_id: int) -> bool:
        return self._one(q.DELETE_REVIEW, (review_id,)) is not None

    def list_reviews_for_user(self, user_id: int) -> list[dict[str, Any]]:
        return self._all(q.LIST_REVIEWS_FOR_USER, (user_id,))

    # Notifications

    def insert_notification(
        self,
        recipient_id: int,
        message: str,
        event: str | None = None,
        application_id: int | None = None,
        interview_id: int | None = None,
        project_id: int | None = None,
        payment_id: int | None = None,
    ) -> dict[str, Any]:
        return self._one(
            q.INSERT_NOTIFICATION,
            (recipient_id, message, event, application_id, interview_id, project_id, payment_id),
        )

    def get_notification(self, notification_id: int) -> dict[str, Any] | None:
        return self._one(q.GET_NOTIFICATION, (notification_id,))

    def list_notifications(
        self, recipient_id: int, is_read: bool, limit: int | None = None
    ) -> list[dict[str, Any]]:
        return self._all(q.LIST_NOTIFICATIONS, (recipient_id, is_read, limit))

    def mark_notification_read(self, notification_id: int, recipient_id: int) -> dict[str, Any] | None:
        return self._one(q.MARK_NOTIFICATION_READ, (notification_id, recipient_id))
