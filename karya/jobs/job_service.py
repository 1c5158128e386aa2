"""Service for job postings and the jobs users bookmark."""

import logging
from typing import Any

from psycopg2 import errors as pg_errors

from karya.lifecycle.states import Role
from karya.shared.database import Database
from karya.shared.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

from .queries import (
    DELETE_JOB,
    DELETE_SAVED_JOB,
    GET_JOB_BY_ID,
    GET_JOBS,
    GET_JOBS_FOR_HIRER,
    GET_SAVED_JOBS,
    INSERT_JOB,
    INSERT_SAVED_JOB,
    UPDATE_JOB,
)

logger = logging.getLogger(__name__)

WORKPLACE_TYPES = ("Onsite", "Remote", "Hybrid")
JOB_TYPES = ("Full-time", "Part-time", "Freelance")
NOTIFICATION_PREFERENCES = ("In-app", "Email", "Both")
REQUIRED_FIELDS = (
    "title",
    "company",
    "workplace_type",
    "location",
    "job_type",
    "category",
    "sub_category",
    "description",
)


def _validate_job(fields: dict[str, Any]) -> tuple:
    missing = [name for name in REQUIRED_FIELDS if not str(fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if fields["workplace_type"] not in WORKPLACE_TYPES:
        raise ValidationError(f"workplace_type must be one of {', '.join(WORKPLACE_TYPES)}")
    if fields["job_type"] not in JOB_TYPES:
        raise ValidationError(f"job_type must be one of {', '.join(JOB_TYPES)}")
    preference = fields.get("notification_preference") or "In-app"
    if preference not in NOTIFICATION_PREFERENCES:
        raise ValidationError(
            f"notification_preference must be one of {', '.join(NOTIFICATION_PREFERENCES)}"
        )
    return (
        fields["title"].strip(),
        fields["company"].strip(),
        fields["workplace_type"],
        fields["location"].strip(),
        fields["job_type"],
        fields["category"].strip(),
        fields["sub_category"].strip(),
        preference,
        fields["description"].strip(),
    )


class JobService:
    """Service for creating, editing and browsing job postings."""

    def __init__(self, database: Database):
        """Initialize the job service.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def create_job(self, hirer_id: int, role: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Post a new job.

        Raises:
            PermissionDeniedError: If the actor is not a hirer
            ValidationError: If a required field is missing or an enum value is unknown
        """
        if role != Role.HIRER.value:
            raise PermissionDeniedError("Only hirers can post jobs")
        values = _validate_job(fields)
        with self.db.get_cursor() as cur:
            cur.execute(INSERT_JOB, (hirer_id, *values))
            columns = [desc[0] for desc in cur.description]
            job = dict(zip(columns, cur.fetchone()))
        logger.info(f"Hirer {hirer_id} posted job {job['job_id']}")
        return job

    def get_job(self, job_id: int) -> dict[str, Any]:
        with self.db.get_cursor() as cur:
            cur.execute(GET_JOB_BY_ID, (job_id,))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()
        if not row:
            raise NotFoundError("Job", job_id)
        return dict(zip(columns, row))

    def _require_owner_or_admin(self, job: dict[str, Any], actor_id: int, role: str) -> None:
        if job["hirer_id"] != actor_id and role != Role.ADMIN.value:
            raise PermissionDeniedError("Only the job's hirer or an admin can change it")

    def update_job(
        self, actor_id: int, role: str, job_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace a job's editable fields; unspecified fields keep their values."""
        job = self.get_job(job_id)
        self._require_owner_or_admin(job, actor_id, role)
        merged = {**job, **{k: v for k, v in fields.items() if v is not None}}
        values = _validate_job(merged)
        with self.db.get_cursor() as cur:
            cur.execute(UPDATE_JOB, (*values, job_id))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()
        if not row:
            raise NotFoundError("Job", job_id)
        logger.info(f"Job {job_id} updated by user {actor_id}")
        return dict(zip(columns, row))

    def delete_job(self, actor_id: int, role: str, job_id: int) -> None:
        """Delete a job and, through the schema, its applications."""
        job = self.get_job(job_id)
        self._require_owner_or_admin(job, actor_id, role)
        with self.db.get_cursor() as cur:
            cur.execute(DELETE_JOB, (job_id,))
            if not cur.fetchone():
                raise NotFoundError("Job", job_id)
        logger.info(f"Job {job_id} deleted by user {actor_id}")

    def list_jobs(
        self,
        category: str | None = None,
        job_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Browse jobs, newest first.

        Raises:
            ValueError: If limit or offset are negative
        """
        if limit < 0:
            raise ValidationError("Limit must be non-negative")
        if offset < 0:
            raise ValidationError("Offset must be non-negative")

        with self.db.get_cursor() as cur:
            cur.execute(GET_JOBS, (category, category, job_type, job_type, limit, offset))
            columns = [desc[0] for desc in cur.description]
            jobs = [dict(zip(columns, row)) for row in cur.fetchall()]

        logger.debug(f"Retrieved {len(jobs)} job(s)")
        return jobs

    def list_jobs_for_hirer(self, hirer_id: int) -> list[dict[str, Any]]:
        with self.db.get_cursor() as cur:
            cur.execute(GET_JOBS_FOR_HIRER, (hirer_id,))
            columns = [desc[0] for desc in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    # Saved jobs

    def save_job(self, user_id: int, job_id: int) -> dict[str, Any]:
        """Bookmark a job for the user.

        Raises:
            NotFoundError: If the job does not exist
            ConflictError: If the user already saved this job
        """
        self.get_job(job_id)
        try:
            with self.db.get_cursor() as cur:
                cur.execute(INSERT_SAVED_JOB, (user_id, job_id))
                columns = [desc[0] for desc in cur.description]
                saved = dict(zip(columns, cur.fetchone()))
        except pg_errors.UniqueViolation:
            raise ConflictError("Job already saved") from None
        logger.info(f"User {user_id} saved job {job_id}")
        return saved

    def list_saved_jobs(self, user_id: int) -> list[dict[str, Any]]:
        with self.db.get_cursor() as cur:
            cur.execute(GET_SAVED_JOBS, (user_id,))
            columns = [desc[0] for desc in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    def unsave_job(self, user_id: int, job_id: int) -> None:
        with self.db.get_cursor() as cur:
            cur.execute(DELETE_SAVED_JOB, (user_id, job_id))
            if not cur.fetchone():
                raise NotFoundError("Saved job", job_id)
        logger.info(f"User {user_id} unsaved job {job_id}")
