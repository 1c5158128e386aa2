"""Reputation badges derived from profile, volume, timeliness and ratings."""

from .badge_calculator import BadgeService, badge_score, calculate_badge

__all__ = ["BadgeService", "badge_score", "calculate_badge"]
