"""
Badge calculator

Scores a user's reputation from four signals and maps the score to a tier:

    profile complete          20
    projects >=1 / >=6 / >=11 10 / 20 / 30
    on time  >=50% / 100%     10 / 20
    rating   >=3 / >=4 / >=4.5 10 / 20 / 30

    >=80 gold, >=50 silver, >=20 bronze, otherwise none

The badge is recomputed from current data whenever it is needed. Each signal
is gathered separately; a signal that fails to compute contributes nothing
instead of aborting the whole calculation.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from karya.lifecycle.states import Badge, PaymentStatus, ProjectStatus, Role, TaskStatus
from karya.shared.errors import NotFoundError

logger = logging.getLogger(__name__)

PROFILE_POINTS = 20
VOLUME_TIERS = ((11, 30), (6, 20), (1, 10))
RATING_TIERS = ((4.5, 30), (4.0, 20), (3.0, 10))
BADGE_TIERS = ((80, Badge.GOLD), (50, Badge.SILVER), (20, Badge.BRONZE))


def badge_score(
    profile_complete: bool,
    project_count: int,
    on_time_percentage: float,
    average_rating: float,
) -> int:
    score = PROFILE_POINTS if profile_complete else 0
    score += next((points for floor, points in VOLUME_TIERS if project_count >= floor), 0)
    if on_time_percentage >= 100:
        score += 20
    elif on_time_percentage >= 50:
        score += 10
    score += next((points for floor, points in RATING_TIERS if average_rating >= floor), 0)
    return score


def badge_for_score(score: int) -> Badge:
    return next((badge for floor, badge in BADGE_TIERS if score >= floor), Badge.NONE)


def calculate_badge(
    profile_complete: bool,
    project_count: int,
    on_time_percentage: float,
    average_rating: float,
) -> Badge:
    """Pure tier calculation from the four signal values."""
    return badge_for_score(
        badge_score(profile_complete, project_count, on_time_percentage, average_rating)
    )


def _percentage(on_time: int, total: int) -> float:
    # No history yet counts as fully on time
    if total == 0:
        return 100.0
    if on_time == total:
        return 100.0
    return on_time * 100.0 / total


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def hirer_on_time_percentage(
    payments: Iterable[dict[str, Any]], projects_by_id: dict[int, dict[str, Any]]
) -> float:
    """Share of completed payments made no later than their project's deadline."""
    completed = [p for p in payments if p["status"] == PaymentStatus.COMPLETED.value]
    on_time = 0
    for payment in completed:
        deadline = (projects_by_id.get(payment["project_id"]) or {}).get("deadline")
        if deadline is None or _as_datetime(payment["created_at"]) <= _as_datetime(deadline):
            on_time += 1
    return _percentage(on_time, len(completed))


def _task_on_time(task: dict[str, Any]) -> bool:
    if task.get("deadline") is None:
        return True
    if task["status"] != TaskStatus.DONE.value:
        return False
    finished = task.get("completed_at") or task["created_at"]
    return _as_datetime(finished) <= _as_datetime(task["deadline"])


def freelancer_on_time_percentage(projects: Iterable[dict[str, Any]]) -> float:
    """Share of completed projects whose every deadlined task was done in time."""
    completed = [p for p in projects if p["status"] == ProjectStatus.COMPLETED.value]
    on_time = sum(
        1
        for project in completed
        if project.get("deadline") is None
        or all(_task_on_time(task) for task in project.get("tasks", []))
    )
    return _percentage(on_time, len(completed))


def average_rating(reviews: Iterable[dict[str, Any]]) -> float:
    ratings = [int(r["rating"]) for r in reviews]
    return sum(ratings) / len(ratings) if ratings else 0.0


class BadgeService:
    """Gathers badge signals from the store and persists the resulting tier."""

    def __init__(self, store):
        if not store:
            raise ValueError("Store is required")
        self.store = store

    def recalculate(self, user_id: int) -> Badge:
        """
        Recompute and store the badge for ``user_id``.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.store.get_user(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        role = user.get("role")

        project_count = self._signal(user_id, "project count", 0, self._project_count, user_id, role)
        on_time = self._signal(user_id, "on-time performance", 0.0, self._on_time, user_id, role)
        rating = self._signal(
            user_id,
            "average rating",
            0.0,
            lambda: average_rating(self.store.list_reviews_for_user(user_id)),
        )

        badge = calculate_badge(bool(user.get("is_profile_complete")), project_count, on_time, rating)
        self.store.update_user_badge(user_id, badge)
        logger.info(
            f"Badge for user {user_id}: {badge.value} "
            f"(projects={project_count}, on_time={on_time:.0f}%, rating={rating:.2f})"
        )
        return badge

    @staticmethod
    def _signal(user_id: int, name: str, fallback, compute, *args):
        try:
            return compute(*args)
        except Exception as e:
            logger.error(f"Failed to compute {name} for user {user_id}: {e}", exc_info=True)
            return fallback

    def _project_count(self, user_id: int, role: str) -> int:
        if role == Role.HIRER.value:
            return self.store.count_projects(hirer_id=user_id)
        if role == Role.FREELANCER.value:
            return self.store.count_projects(freelancer_id=user_id)
        return 0

    def _on_time(self, user_id: int, role: str) -> float:
        if role == Role.HIRER.value:
            payments = self.store.list_payments(hirer_id=user_id, status=PaymentStatus.COMPLETED)
            projects = {p["project_id"]: p for p in self.store.list_projects(hirer_id=user_id)}
            return hirer_on_time_percentage(payments, projects)
        if role == Role.FREELANCER.value:
            return freelancer_on_time_percentage(
                self.store.list_projects(freelancer_id=user_id, status=ProjectStatus.COMPLETED)
            )
        return 0.0
