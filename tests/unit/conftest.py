"""
Pytest configuration and fixtures for unit tests.

Unit tests are fast, isolated tests that don't require external dependencies.
Services run against the in-memory store from ``fakes.py``; database-facing
classes run against a mocked cursor.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, Mock

import pytest
from fakes import (
    FakeCalendar,
    FakeCardGateway,
    FakeWalletGateway,
    InMemoryEntityStore,
    RecordingDispatcher,
)

from karya.lifecycle import ApplicationLifecycleEngine
from karya.payments import PaymentService
from karya.projects import ProjectService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
GOOGLE_TOKENS = {
    "access_token": "ya29.test",
    "refresh_token": "1//refresh",
    "expiry_date": 4_102_444_800_000,
}


@pytest.fixture
def mock_database():
    """Database whose get_cursor() yields the returned cursor mock."""
    db = Mock()
    cursor = MagicMock()
    db.get_cursor.return_value.__enter__ = Mock(return_value=cursor)
    db.get_cursor.return_value.__exit__ = Mock(return_value=False)
    db.cursor = cursor
    return db


@pytest.fixture
def clock():
    """Mutable clock; tests move time with ``clock.advance(...)``."""

    class Clock:
        def __init__(self):
            self.now = NOW

        def __call__(self):
            return self.now

        def advance(self, **delta):
            self.now = self.now + timedelta(**delta)

    return Clock()


@pytest.fixture
def store():
    return InMemoryEntityStore(now=NOW)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def card_gateway():
    return FakeCardGateway()


@pytest.fixture
def wallet_gateway():
    return FakeWalletGateway()


@pytest.fixture
def hirer(store):
    return store.add_user(role="hirer", first_name="Hana", google_tokens=dict(GOOGLE_TOKENS))


@pytest.fixture
def freelancer(store):
    return store.add_user(role="user", first_name="Ram", wallet_id="9800000001")


@pytest.fixture
def job(store, hirer):
    return store.add_job(hirer_id=hirer["user_id"], title="Backend Developer")


@pytest.fixture
def engine(store, dispatcher, calendar, clock):
    return ApplicationLifecycleEngine(
        store=store, dispatcher=dispatcher, calendar=calendar, now_fn=clock
    )


@pytest.fixture
def project_service(store, dispatcher, clock):
    return ProjectService(store=store, dispatcher=dispatcher, now_fn=clock)


@pytest.fixture
def payment_service(store, dispatcher, card_gateway, wallet_gateway):
    return PaymentService(
        store=store,
        dispatcher=dispatcher,
        card_gateway=card_gateway,
        wallet_gateway=wallet_gateway,
        public_api_url="https://api.karya.test",
        frontend_url="https://karya.test",
    )


@pytest.fixture
def application(engine, freelancer, job):
    return engine.apply_to_job(
        freelancer["user_id"], "user", job["job_id"], "I have five years of Flask experience."
    )


@pytest.fixture
def scheduled_interview(engine, hirer, application, clock):
    return engine.schedule_interview(
        hirer["user_id"], application["application_id"], clock() + timedelta(days=1)
    )


@pytest.fixture
def hired_interview(engine, hirer, application, scheduled_interview):
    """A Completed interview whose application is Hired."""
    engine.mark_interview_status(hirer["user_id"], scheduled_interview["interview_id"], "Completed")
    engine.confirm_hire(hirer["user_id"], application["application_id"])
    return scheduled_interview


@pytest.fixture
def project(project_service, hirer, hired_interview):
    return project_service.create_project(
        hirer["user_id"], hired_interview["interview_id"], "API build", "1500.00"
    )
