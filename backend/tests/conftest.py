# backend/tests/conftest.py
"""
Pytest configuration for the ToolShare backend.

Tests run against an in-memory SQLite database shared through a static
connection pool. The Redis booking mutex is disabled; concurrency is
covered by the optimistic version check on the booking row.
"""

import os
from typing import Iterator

# CRITICAL: Set testing mode BEFORE any toolshare imports!
os.environ["CI"] = "1"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["BOOKING_LOCK_ENABLED"] = "false"
os.environ["is_testing"] = "true"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from toolshare import models  # noqa: F401  (registers tables on Base.metadata)
from toolshare.database import Base
from toolshare.models.booking import Booking
from toolshare.services.booking_lifecycle_service import BookingLifecycleService

from .factories.booking_builders import create_booking, start_rental


@pytest.fixture
def engine() -> Iterator[Engine]:
    test_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def service(db: Session) -> BookingLifecycleService:
    return BookingLifecycleService(db)


@pytest.fixture
def pending_booking(service: BookingLifecycleService) -> Booking:
    return create_booking(service)


@pytest.fixture
def ongoing_booking(service: BookingLifecycleService) -> Booking:
    return start_rental(service, create_booking(service))
