# tests/conftest.py

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from table_booking.application.event_service import EventService
from table_booking.application.locks import EventLockRegistry
from table_booking.application.reservation_engine import ReservationEngine
from table_booking.domain.principal import Role
from table_booking.infrastructure.db.models import Base
from table_booking.infrastructure.db.session import build_engine, build_session_factory
from table_booking.infrastructure.notifications import RecordingNotificationSink
from table_booking.infrastructure.security import JWTPrincipalResolver, create_access_token
from table_booking.main import create_app

from tests.support import TEST_JWT_SECRET, FakeClock, create_gala_event


@pytest.fixture
def db_engine(tmp_path):
    # File-backed so that threads get their own connections.
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return RecordingNotificationSink()


@pytest.fixture
def locks():
    return EventLockRegistry()


@pytest.fixture
def engine(session_factory, notifier, locks, clock):
    return ReservationEngine(
        session_factory,
        notifier=notifier,
        locks=locks,
        clock=clock,
        lock_duration=timedelta(minutes=15),
        admin_ids=("admin-chat",),
    )


@pytest.fixture
def event_service(session_factory, locks):
    return EventService(session_factory, locks=locks)


@pytest.fixture
def gala_event(event_service):
    return create_gala_event(event_service)


@pytest.fixture
def client(session_factory, notifier, clock, gala_event):
    app = create_app(
        session_factory=session_factory,
        notifier=notifier,
        clock=clock,
        principal_resolver=JWTPrincipalResolver(secret=TEST_JWT_SECRET),
        start_sweeper=False,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def _headers(identity: str, role: Role = Role.USER) -> dict[str, str]:
        token = create_access_token(identity, role, secret=TEST_JWT_SECRET)
        return {"Authorization": f"Bearer {token}"}

    return _headers
