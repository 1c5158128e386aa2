"""Job postings."""

from .job_service import JobService

__all__ = ["JobService"]
