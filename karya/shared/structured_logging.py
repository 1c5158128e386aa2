"""
Structured Logging Utilities

Attaches entity context (interview_id, payment_id, user_id, ...) to log lines
emitted by background and callback paths, where a bare message is hard to
trace back to the record it concerns.
"""

from __future__ import annotations

import logging
from typing import Any

STRUCTURED_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] [%(context)s] %(message)s"


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.

    Usage:
        logger = get_structured_logger(__name__, payment_id=12, provider="wallet")
        logger.info("Lookup returned Completed")  # Logs with context
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, context)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """
        Process log message to add context.

        Args:
            msg: Log message
            kwargs: Logging keyword arguments

        Returns:
            Tuple of (formatted message, updated kwargs)
        """
        context_str = _format_context(self.extra)
        kwargs.setdefault("extra", {})["context"] = context_str
        return msg, kwargs


class ContextDefaultFilter(logging.Filter):
    """Give records logged without an adapter an empty ``context`` field."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "context"):
            record.context = "none"
        return True


def _format_context(context: dict[str, Any]) -> str:
    parts = [f"{key}={value}" for key, value in context.items() if value is not None]
    return " | ".join(parts) if parts else "none"


def get_structured_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """
    Get a structured logger with context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields (e.g., interview_id=7, application_id=3)

    Returns:
        StructuredLoggerAdapter instance
    """
    base_logger = logging.getLogger(name)
    return StructuredLoggerAdapter(base_logger, **context)


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Install a root handler that renders the ``context`` field."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(STRUCTURED_FORMAT))
    handler.addFilter(ContextDefaultFilter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
