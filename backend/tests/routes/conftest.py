from datetime import datetime
from typing import Iterator

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from toolshare.api.dependencies import get_db, get_now
from toolshare.main import app

from ..factories.booking_builders import NOW


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def client(session_factory: sessionmaker, clock: Clock) -> Iterator[TestClient]:
    def _get_test_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_now] = clock
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
