#!/usr/bin/env python3
"""
Run the interview reconciliation sweep outside Airflow.

Completes interviews whose meeting window has ended without an outcome.
Runs once with ``--once``; otherwise repeats every ``--interval-minutes``.

Usage:
    python scripts/run_interview_sweeper.py [--once] [--interval-minutes N]
"""

import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

from karya.lifecycle import ApplicationLifecycleEngine
from karya.notifier import EmailNotifier, NotificationDispatcher
from karya.reconciliation import InterviewSweeper
from karya.shared import PostgreSQLDatabase, close_all_pools
from karya.shared.structured_logging import configure_structured_logging
from karya.store import EntityStore

logger = logging.getLogger(__name__)


def build_sweeper() -> InterviewSweeper:
    database_url = os.getenv("DATABASE_URL") or (
        f"postgresql://{os.getenv('POSTGRES_USER', 'postgres')}:"
        f"{os.getenv('POSTGRES_PASSWORD', 'postgres')}@"
        f"{os.getenv('POSTGRES_HOST', 'localhost')}:{os.getenv('POSTGRES_PORT', '5432')}/"
        f"{os.getenv('POSTGRES_DB', 'karya')}"
    )
    store = EntityStore(database=PostgreSQLDatabase(connection_string=database_url))
    email_notifier = EmailNotifier() if os.getenv("SMTP_HOST") else None
    meeting_duration = int(os.getenv("MEETING_DURATION_MINUTES", "60"))
    engine = ApplicationLifecycleEngine(
        store=store,
        dispatcher=NotificationDispatcher(store=store, email_notifier=email_notifier),
        meeting_duration_minutes=meeting_duration,
    )
    return InterviewSweeper(store=store, engine=engine, meeting_duration_minutes=meeting_duration)


def main():
    """Main entry point."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Complete stale Scheduled interviews")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--interval-minutes",
        type=int,
        default=int(os.getenv("SWEEP_INTERVAL_MINUTES", "15")),
        help="Minutes between sweeps (default: SWEEP_INTERVAL_MINUTES or 15)",
    )
    args = parser.parse_args()
    configure_structured_logging()

    if args.interval_minutes <= 0:
        logger.error("--interval-minutes must be positive")
        sys.exit(2)

    sweeper = build_sweeper()
    try:
        while True:
            try:
                sweeper.run()
            except Exception as e:
                logger.error(f"Sweep failed: {e}", exc_info=True)
                if args.once:
                    sys.exit(1)
            if args.once:
                break
            time.sleep(args.interval_minutes * 60)
    except KeyboardInterrupt:
        logger.info("Sweeper stopped")
    finally:
        close_all_pools()


if __name__ == "__main__":
    main()
