"""Persistent records for the marketplace lifecycle entities."""

from .entity_store import EntityStore

__all__ = ["EntityStore"]
