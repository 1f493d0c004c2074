"""
Test configuration and shared fixtures for the scheduling engine test suite.

Database tests run against an in-memory SQLite database. Each test gets its
own engine with freshly created tables, so tests never see each other's rows.
Service tests mostly use the in-memory store from tests/fakes.py instead.
"""

import pytest
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, configure_sqlite_transactions

# Import all models to ensure they're registered with SQLAlchemy before tables are created
from models import Location, Practitioner
from services.sql_store import SqlSchedulingStore
from tests.fakes import InMemorySchedulingStore, RecordingAuditRecorder, RecordingNotificationSender


TEST_TENANT_ID = 1


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a database engine for one test.

    StaticPool keeps the single in-memory connection alive for the whole test,
    including requests served by TestClient from another thread. The engine
    gets the same transaction handling as the app so savepoints work.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    configure_sqlite_transactions(engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the per-test engine."""
    TestSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestSession()

    yield session

    session.close()


@pytest.fixture
def location(db_session):
    """A practice location in New York."""
    loc = Location(tenant_id=TEST_TENANT_ID, name="Main Street Practice", timezone="America/New_York")
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture
def practitioner(db_session, location):
    """An active practitioner working at the test location."""
    p = Practitioner(tenant_id=TEST_TENANT_ID, name="Dr. Rivera", location_id=location.id, is_active=True)
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture
def sql_store(db_session):
    return SqlSchedulingStore(db_session)


@pytest.fixture
def store():
    """In-memory store with one practitioner (id 1) in tenant 1."""
    memory_store = InMemorySchedulingStore()
    memory_store.add_practitioner(TEST_TENANT_ID, 1, "Dr. Rivera", location_id=10)
    memory_store.add_location(TEST_TENANT_ID, 10, "America/New_York")
    return memory_store


@pytest.fixture
def notification_sender():
    return RecordingNotificationSender()


@pytest.fixture
def audit_recorder():
    return RecordingAuditRecorder()
