import threading
from unittest.mock import MagicMock

import pytest
from loguru import logger
from redis.exceptions import ConnectionError as RedisConnectionError, LockError

from hall_reservations.core import config
from hall_reservations.core.errors import StoreTimeoutError
from hall_reservations.core.locks import HallLockManager, warn_if_single_process
from hall_reservations.core.redis import get_redis_client, reset_redis_client


def test_local_lock_excludes_second_holder():
    locks = HallLockManager()

    with locks.hold(1, timeout=1):
        with pytest.raises(StoreTimeoutError):
            with locks.hold(1, timeout=0.05):
                pass

        # other halls are independent
        with locks.hold(2, timeout=0.05):
            pass

    with locks.hold(1, timeout=0.05):
        pass


def test_local_lock_released_on_error():
    locks = HallLockManager()

    with pytest.raises(RuntimeError):
        with locks.hold(3, timeout=1):
            raise RuntimeError("write failed")

    acquired = threading.Event()

    def other_worker():
        with locks.hold(3, timeout=1):
            acquired.set()

    worker = threading.Thread(target=other_worker)
    worker.start()
    worker.join(timeout=5)
    assert acquired.is_set()


def test_redis_lock_acquired_and_released():
    client = MagicMock()
    lock = client.lock.return_value
    lock.acquire.return_value = True
    locks = HallLockManager(redis_client=client, lease_seconds=12)

    with locks.hold(7, timeout=2):
        pass

    assert locks.distributed
    client.lock.assert_called_once_with("hall-lock:7", timeout=12, blocking_timeout=2)
    lock.release.assert_called_once_with()


def test_redis_lock_timeout():
    client = MagicMock()
    client.lock.return_value.acquire.return_value = False
    locks = HallLockManager(redis_client=client)

    with pytest.raises(StoreTimeoutError):
        with locks.hold(7, timeout=0.1):
            pytest.fail("lock body must not run")


def test_redis_unreachable_while_acquiring():
    client = MagicMock()
    client.lock.return_value.acquire.side_effect = RedisConnectionError("refused")
    locks = HallLockManager(redis_client=client)

    with pytest.raises(StoreTimeoutError):
        with locks.hold(7, timeout=0.1):
            pass


def test_expired_lease_on_release_is_logged_not_raised():
    client = MagicMock()
    lock = client.lock.return_value
    lock.acquire.return_value = True
    lock.release.side_effect = LockError("Cannot release an unlocked lock")
    locks = HallLockManager(redis_client=client)

    with locks.hold(7, timeout=1):
        pass


@pytest.fixture
def fresh_redis_client():
    reset_redis_client()
    yield
    reset_redis_client()


def test_no_redis_url_means_local_locks(monkeypatch, fresh_redis_client):
    monkeypatch.setattr(config, "REDIS_URL", None)
    assert get_redis_client() is None


def test_unreachable_redis_falls_back(monkeypatch, fresh_redis_client):
    monkeypatch.setattr(config, "REDIS_URL", "redis://127.0.0.1:1/0")
    assert get_redis_client() is None


def test_sqlite_without_redis_warns():
    messages = []
    sink = logger.add(messages.append, level="WARNING")
    try:
        assert warn_if_single_process(HallLockManager(), "sqlite:///./halls.db") is True
    finally:
        logger.remove(sink)

    assert len(messages) == 1
    assert "single worker" in messages[0]


@pytest.mark.parametrize(
    "redis_client, database_url",
    [
        (MagicMock(), "sqlite:///./halls.db"),
        (None, "postgresql://halls@db.example.test/halls"),
    ],
)
def test_shared_locks_or_row_locks_do_not_warn(redis_client, database_url):
    assert warn_if_single_process(HallLockManager(redis_client=redis_client), database_url) is False
