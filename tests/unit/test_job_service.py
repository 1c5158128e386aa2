"""Unit tests for JobService."""

from unittest.mock import Mock

import pytest
from psycopg2 import errors as pg_errors

from karya.jobs.job_service import JobService
from karya.shared.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

JOB_FIELDS = {
    "title": "Backend Developer",
    "company": "Acme",
    "workplace_type": "Remote",
    "location": "Kathmandu",
    "job_type": "Freelance",
    "category": "Engineering",
    "sub_category": "Backend",
    "description": "Build our payments API.",
}


@pytest.fixture
def job_service(mock_database):
    """Create a JobService instance with mocked database."""
    return JobService(database=mock_database)


class TestJobService:
    """Test cases for JobService."""

    def test_init_requires_database(self):
        """Test that JobService requires a database."""
        with pytest.raises(ValueError, match="Database is required"):
            JobService(database=None)

    def test_create_job_requires_hirer(self, job_service):
        with pytest.raises(PermissionDeniedError):
            job_service.create_job(1, "user", JOB_FIELDS)

    def test_create_job_reports_missing_fields(self, job_service):
        fields = {**JOB_FIELDS, "company": "", "location": None}

        with pytest.raises(ValidationError, match="company, location"):
            job_service.create_job(1, "hirer", fields)

    def test_create_job_rejects_unknown_job_type(self, job_service):
        with pytest.raises(ValidationError, match="job_type must be one of"):
            job_service.create_job(1, "hirer", {**JOB_FIELDS, "job_type": "Gig"})

    def test_create_job_success(self, job_service, mock_database):
        cursor = mock_database.cursor
        cursor.description = [("job_id",), ("hirer_id",), ("title",)]
        cursor.fetchone.return_value = (10, 1, "Backend Developer")

        job = job_service.create_job(1, "hirer", JOB_FIELDS)

        assert job == {"job_id": 10, "hirer_id": 1, "title": "Backend Developer"}
        params = cursor.execute.call_args[0][1]
        assert params[0] == 1
        assert params[8] == "In-app"  # default notification preference

    def test_get_job_not_found(self, job_service, mock_database):
        mock_database.cursor.description = [("job_id",)]
        mock_database.cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError, match="Job 42 not found"):
            job_service.get_job(42)

    def test_update_job_by_other_hirer_denied(self, job_service):
        job_service.get_job = Mock(return_value={**JOB_FIELDS, "job_id": 5, "hirer_id": 1})

        with pytest.raises(PermissionDeniedError):
            job_service.update_job(2, "hirer", 5, {"title": "New title"})

    def test_admin_can_delete_any_job(self, job_service, mock_database):
        job_service.get_job = Mock(return_value={**JOB_FIELDS, "job_id": 5, "hirer_id": 1})
        mock_database.cursor.fetchone.return_value = (5,)

        job_service.delete_job(99, "admin", 5)

        assert mock_database.cursor.execute.call_args[0][1] == (5,)

    def test_list_jobs_rejects_negative_limit(self, job_service):
        with pytest.raises(ValidationError, match="Limit must be non-negative"):
            job_service.list_jobs(limit=-1)

    def test_list_jobs_passes_filters(self, job_service, mock_database):
        mock_database.cursor.description = [("job_id",)]
        mock_database.cursor.fetchall.return_value = [(1,), (2,)]

        jobs = job_service.list_jobs(category="Engineering", limit=10, offset=20)

        assert jobs == [{"job_id": 1}, {"job_id": 2}]
        assert mock_database.cursor.execute.call_args[0][1] == (
            "Engineering",
            "Engineering",
            None,
            None,
            10,
            20,
        )


class TestSavedJobs:
    def test_save_job(self, job_service, mock_database):
        job_service.get_job = Mock(return_value={**JOB_FIELDS, "job_id": 5, "hirer_id": 1})
        cursor = mock_database.cursor
        cursor.description = [("saved_job_id",), ("user_id",), ("job_id",)]
        cursor.fetchone.return_value = (3, 7, 5)

        saved = job_service.save_job(7, 5)

        assert saved == {"saved_job_id": 3, "user_id": 7, "job_id": 5}
        assert cursor.execute.call_args[0][1] == (7, 5)

    def test_save_missing_job(self, job_service, mock_database):
        job_service.get_job = Mock(side_effect=NotFoundError("Job", 5))

        with pytest.raises(NotFoundError):
            job_service.save_job(7, 5)
        mock_database.cursor.execute.assert_not_called()

    def test_duplicate_save_is_conflict(self, job_service, mock_database):
        job_service.get_job = Mock(return_value={**JOB_FIELDS, "job_id": 5, "hirer_id": 1})
        mock_database.cursor.execute.side_effect = pg_errors.UniqueViolation()

        with pytest.raises(ConflictError, match="already saved"):
            job_service.save_job(7, 5)

    def test_list_saved_jobs(self, job_service, mock_database):
        mock_database.cursor.description = [("saved_job_id",), ("job_id",), ("title",)]
        mock_database.cursor.fetchall.return_value = [(3, 5, "Backend Developer")]

        saved = job_service.list_saved_jobs(7)

        assert saved == [{"saved_job_id": 3, "job_id": 5, "title": "Backend Developer"}]
        assert mock_database.cursor.execute.call_args[0][1] == (7,)

    def test_unsave_job(self, job_service, mock_database):
        mock_database.cursor.fetchone.return_value = (3,)

        job_service.unsave_job(7, 5)

        assert mock_database.cursor.execute.call_args[0][1] == (7, 5)

    def test_unsave_job_not_saved(self, job_service, mock_database):
        mock_database.cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError, match="Saved job 5 not found"):
            job_service.unsave_job(7, 5)
