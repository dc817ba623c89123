"""
Per-hall write serialization.

Every write that reads a hall's booking set and then changes it (request,
reschedule, status change, capacity change, delete) runs inside
``HallLockManager.hold(hall_id, timeout)``. With Redis configured the lock is
shared by every worker process; without it a ``threading.Lock`` per hall
covers a single process.
"""
import threading
from contextlib import contextmanager

from redis.exceptions import LockError, RedisError

from hall_reservations.core import config
from hall_reservations.core.errors import StoreTimeoutError
from hall_reservations.core.logging_config import get_logger
from hall_reservations.core.redis import get_redis_client

logger = get_logger()


class HallLockManager:
    def __init__(self, redis_client=None, lease_seconds: float | None = None):
        self._redis = redis_client
        self.lease_seconds = lease_seconds or config.HALL_LOCK_LEASE_SECONDS
        self._guard = threading.Lock()
        self._local_locks: dict[int, threading.Lock] = {}

    @property
    def distributed(self) -> bool:
        return self._redis is not None

    def _local_lock(self, hall_id: int) -> threading.Lock:
        with self._guard:
            return self._local_locks.setdefault(hall_id, threading.Lock())

    @contextmanager
    def hold(self, hall_id: int, timeout: float):
        if self._redis is not None:
            with self._hold_redis(hall_id, timeout):
                yield
            return

        lock = self._local_lock(hall_id)
        if not lock.acquire(timeout=timeout):
            raise StoreTimeoutError(f"Timed out waiting for write access to hall {hall_id}")
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def _hold_redis(self, hall_id: int, timeout: float):
        lock = self._redis.lock(
            f"hall-lock:{hall_id}",
            timeout=self.lease_seconds,
            blocking_timeout=timeout,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise StoreTimeoutError(f"Lock service unavailable for hall {hall_id}") from e

        if not acquired:
            raise StoreTimeoutError(f"Timed out waiting for write access to hall {hall_id}")

        try:
            yield
        finally:
            try:
                lock.release()
            except (LockError, RedisError) as e:
                # lease expired before release; the write itself already committed or rolled back
                logger.warning(f"Hall lock release failed for hall {hall_id}: {e}")


def warn_if_single_process(locks: HallLockManager, database_url: str) -> bool:
    """
    True when overlapping bookings are only prevented inside one process.

    SQLite ignores ``FOR UPDATE``, so without Redis the in-process lock is the
    only thing serializing writes to a hall and the API must run with a single
    worker.
    """
    if locks.distributed or not database_url.startswith("sqlite"):
        return False

    logger.warning(
        "SQLite store without REDIS_URL: hall locks are in-process only, "
        "run a single worker or configure Redis to avoid double bookings"
    )
    return True


_hall_locks = None


def get_hall_locks() -> HallLockManager:
    global _hall_locks

    if _hall_locks is None:
        _hall_locks = HallLockManager(redis_client=get_redis_client())
        warn_if_single_process(_hall_locks, config.DATABASE_URL)
    return _hall_locks
