"""
Airflow Task Functions

Python functions to be called by Airflow PythonOperator tasks.
These functions wrap the karya service classes and handle environment setup.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from karya.lifecycle import ApplicationLifecycleEngine
from karya.notifier import EmailNotifier, NotificationDispatcher
from karya.reconciliation import InterviewSweeper
from karya.shared import PostgreSQLDatabase
from karya.store import EntityStore

logger = logging.getLogger(__name__)


def build_db_connection_string() -> str:
    """
    Build PostgreSQL connection string from environment variables.

    Reads from POSTGRES_HOST, POSTGRES_PORT, POSTGRES_USER,
    POSTGRES_PASSWORD, POSTGRES_DB environment variables.

    Returns:
        PostgreSQL connection string
    """
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db = os.getenv("POSTGRES_DB", "karya")

    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def get_interview_sweeper() -> InterviewSweeper:
    """
    Get InterviewSweeper wired to the database and notification dispatcher.

    Email is only attached when SMTP_HOST is configured.

    Returns:
        InterviewSweeper instance
    """
    database = PostgreSQLDatabase(connection_string=build_db_connection_string())
    store = EntityStore(database=database)
    email_notifier = EmailNotifier() if os.getenv("SMTP_HOST") else None
    meeting_duration = int(os.getenv("MEETING_DURATION_MINUTES", "60"))
    engine = ApplicationLifecycleEngine(
        store=store,
        dispatcher=NotificationDispatcher(store=store, email_notifier=email_notifier),
        meeting_duration_minutes=meeting_duration,
    )
    return InterviewSweeper(store=store, engine=engine, meeting_duration_minutes=meeting_duration)


def sweep_stale_interviews_task(**context) -> dict[str, Any]:
    """
    Airflow task function to complete stale interviews.

    Args:
        **context: Airflow context (unused but required for Airflow callable)

    Returns:
        Dictionary with completed/skipped/failed counts (pushed to XCom)
    """
    logger.info("Starting interview reconciliation sweep")

    try:
        sweeper = get_interview_sweeper()
        result = sweeper.run()
    except Exception as e:
        logger.error(f"Interview sweep failed: {e}", exc_info=True)
        raise

    summary = result.as_dict()
    logger.info(f"Interview sweep complete: {summary}")
    return {"status": "success", **summary}
