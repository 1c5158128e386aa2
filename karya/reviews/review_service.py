"""
Review Service

Participants of a completed, paid project rate each other once per
direction. Creating or deleting a review recalculates the reviewed user's
badge.
"""

from __future__ import annotations

import logging
from typing import Any

from karya.lifecycle.states import PaymentStatus, ProjectStatus, Role
from karya.shared.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _parse_rating(rating) -> int:
    if isinstance(rating, bool):
        raise ValidationError("Rating must be an integer from 1 to 5")
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be an integer from 1 to 5") from None
    if value != rating and str(value) != str(rating).strip():
        raise ValidationError("Rating must be an integer from 1 to 5")
    if not 1 <= value <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return value


class ReviewService:
    """Service for project reviews."""

    def __init__(self, store, badge_service, dispatcher=None):
        """
        Initialize the review service.

        Args:
            store: Entity store
            badge_service: BadgeService run for the reviewed user after changes
            dispatcher: NotificationDispatcher (optional)
        """
        if not store:
            raise ValueError("Store is required")
        self.store = store
        self.badge_service = badge_service
        self.dispatcher = dispatcher

    def create_review(
        self,
        reviewer_id: int,
        project_id: int,
        payment_id: int,
        reviewed_user_id: int,
        rating,
        comment: str | None = None,
    ) -> dict[str, Any]:
        """
        Submit a review of the other participant of a completed, paid project.

        Raises:
            ValidationError: Rating outside 1-5
            PermissionDeniedError: Reviewer is not a participant, or the
                reviewed user is not the other participant
            InvalidStateError: Project not Completed or payment not completed
            ConflictError: This reviewer already reviewed this user for the project
        """
        value = _parse_rating(rating)
        project = self.store.get_project(project_id)
        if not project:
            raise NotFoundError("Project", project_id)

        participants = {project["hirer_id"], project["freelancer_id"]}
        if reviewer_id not in participants:
            raise PermissionDeniedError("Only project participants can leave a review")
        other = project["freelancer_id"] if reviewer_id == project["hirer_id"] else project["hirer_id"]
        if reviewed_user_id != other:
            raise PermissionDeniedError("You can only review the other participant of the project")

        if project["status"] != ProjectStatus.COMPLETED.value:
            raise InvalidStateError("Reviews are only allowed once the project is completed")
        payment = self.store.get_payment(payment_id)
        if not payment or payment["project_id"] != project_id:
            raise NotFoundError("Payment", payment_id)
        if payment["status"] != PaymentStatus.COMPLETED.value:
            raise InvalidStateError("Reviews require a completed payment for the project")

        if self.store.find_review(project_id, reviewer_id, reviewed_user_id):
            raise ConflictError("You have already reviewed this user for this project")

        review = self.store.insert_review(
            project_id=project_id,
            payment_id=payment_id,
            reviewer_id=reviewer_id,
            reviewed_user_id=reviewed_user_id,
            rating=value,
            comment=(comment or "").strip() or None,
        )
        logger.info(f"Review {review['review_id']} created for user {reviewed_user_id}")

        self._refresh_badge(reviewed_user_id)
        if self.dispatcher is not None:
            self.dispatcher.notify(
                reviewed_user_id,
                f"You received a {value}-star review for \"{project['title']}\".",
                event="reviewReceived",
                project_id=project_id,
                payment_id=payment_id,
            )
        return review

    def delete_review(self, actor_id: int, role: str, review_id: int) -> None:
        """Delete a review (its author or an admin) and recalculate the reviewed user's badge."""
        review = self.store.get_review(review_id)
        if not review:
            raise NotFoundError("Review", review_id)
        if review["reviewer_id"] != actor_id and role != Role.ADMIN.value:
            raise PermissionDeniedError("Unauthorized to delete this review")
        if not self.store.delete_review(review_id):
            raise NotFoundError("Review", review_id)
        logger.info(f"Review {review_id} deleted by user {actor_id}")
        self._refresh_badge(review["reviewed_user_id"])

    def _refresh_badge(self, user_id: int) -> None:
        # The badge is derived data; it is recomputed again on the next profile fetch
        try:
            self.badge_service.recalculate(user_id)
        except Exception as e:
            logger.error(f"Badge recalculation failed for user {user_id}: {e}", exc_info=True)

    def get_review(self, review_id: int) -> dict[str, Any]:
        review = self.store.get_review(review_id)
        if not review:
            raise NotFoundError("Review", review_id)
        return review

    def list_for_user(self, user_id: int) -> list[dict[str, Any]]:
        return self.store.list_reviews_for_user(user_id)
