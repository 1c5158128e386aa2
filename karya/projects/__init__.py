"""Projects created from completed interviews, with their tasks."""

from .project_service import ProjectService

__all__ = ["ProjectService"]
