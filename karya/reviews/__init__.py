"""Reviews between participants of completed projects."""

from .review_service import ReviewService

__all__ = ["ReviewService"]
