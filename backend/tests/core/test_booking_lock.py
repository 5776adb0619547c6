from unittest.mock import MagicMock

import pytest

from toolshare.core import booking_lock
from toolshare.core.config import settings
from toolshare.core.exceptions import ConflictException


@pytest.fixture
def redis_client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(settings, "booking_lock_enabled", True)
    monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: client)
    return client


def test_lock_disabled_always_acquires(monkeypatch):
    monkeypatch.setattr(settings, "booking_lock_enabled", False)
    assert booking_lock.acquire_booking_lock_sync("b1") is True


def test_lock_uses_namespaced_key_with_ttl(redis_client):
    redis_client.set.return_value = True

    with booking_lock.booking_lock_sync("b1", ttl_s=5):
        pass

    key = f"{settings.lock_namespace}:lock:booking:b1:mutex"
    args, kwargs = redis_client.set.call_args
    assert args[0] == key
    assert kwargs == {"nx": True, "ex": 5}
    redis_client.delete.assert_called_once_with(key)


def test_lock_held_elsewhere_raises_busy(redis_client):
    redis_client.set.return_value = None

    with pytest.raises(ConflictException) as exc_info:
        with booking_lock.booking_lock_sync("b1"):
            pytest.fail("body must not run without the lock")

    assert exc_info.value.code == "BOOKING_BUSY"
    redis_client.delete.assert_not_called()


def test_lock_released_when_body_fails(redis_client):
    redis_client.set.return_value = True

    with pytest.raises(RuntimeError):
        with booking_lock.booking_lock_sync("b1"):
            raise RuntimeError("boom")

    redis_client.delete.assert_called_once()


def test_redis_errors_fall_back_to_proceeding(redis_client):
    redis_client.set.side_effect = ConnectionError("redis down")
    assert booking_lock.acquire_booking_lock_sync("b1") is True


def test_unreachable_redis_proceeds(monkeypatch):
    monkeypatch.setattr(settings, "booking_lock_enabled", True)
    monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: None)
    assert booking_lock.acquire_booking_lock_sync("b1") is True
