"""
Interview Sweeper

Periodic pass that completes interviews whose meeting window has ended but
which nobody marked. An interview is stale once
``scheduled_time + meeting duration`` is in the past.

Each stale interview goes through the lifecycle engine, so the interview and
application moves are the ones a hirer marking it Completed would make. Writes
are conditional on Scheduled; re-running the sweep, or running it while a
hirer marks the same interview by hand, changes each interview at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Callable

from karya.lifecycle import ApplicationLifecycleEngine
from karya.shared.errors import ConflictError, InvalidStateError
from karya.shared.structured_logging import get_structured_logger

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    completed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, int]:
        return {
            "completed": len(self.completed),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InterviewSweeper:
    """Force-completes stale Scheduled interviews and notifies both parties."""

    def __init__(
        self,
        store,
        dispatcher=None,
        now_fn: Callable[[], datetime] = _utc_now,
        meeting_duration_minutes: int = 60,
        batch_size: int = 500,
        engine: ApplicationLifecycleEngine | None = None,
    ):
        """
        Args:
            store: Entity store used to find stale interviews
            dispatcher: NotificationDispatcher for the engine built here;
                ignored when ``engine`` is given
            now_fn: Clock returning an aware datetime
            meeting_duration_minutes: Length of every interview meeting
            batch_size: Maximum interviews handled per run
            engine: Lifecycle engine that performs the transitions
        """
        if not store:
            raise ValueError("Store is required")
        self.store = store
        self.engine = engine or ApplicationLifecycleEngine(
            store=store,
            dispatcher=dispatcher,
            now_fn=now_fn,
            meeting_duration_minutes=meeting_duration_minutes,
        )
        self.now_fn = now_fn
        self.meeting_duration = timedelta(minutes=meeting_duration_minutes)
        self.batch_size = batch_size

    def run(self) -> SweepResult:
        """Run one sweep and return the ids it completed, skipped and failed on."""
        cutoff = self.now_fn() - self.meeting_duration
        stale = self.store.find_stale_interviews(cutoff, limit=self.batch_size)
        result = SweepResult()
        logger.info(f"Interview sweep found {len(stale)} stale interview(s) before {cutoff.isoformat()}")

        for interview in stale:
            interview_id = interview["interview_id"]
            log = get_structured_logger(__name__, interview_id=interview_id)
            try:
                self.engine.complete_stale_interview(interview_id)
            except (ConflictError, InvalidStateError) as e:
                log.info(f"Interview already moved on; skipping ({e})")
                result.skipped.append(interview_id)
            except Exception as e:
                log.error(f"Failed to complete stale interview: {e}", exc_info=True)
                result.failed.append(interview_id)
            else:
                log.info("Stale interview completed")
                result.completed.append(interview_id)

        logger.info(f"Interview sweep finished: {result.as_dict()}")
        return result
