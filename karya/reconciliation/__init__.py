"""Background reconciliation of lifecycle state."""

from .interview_sweeper import InterviewSweeper, SweepResult

__all__ = ["InterviewSweeper", "SweepResult"]
