import redis
from redis.exceptions import RedisError

from hall_reservations.core import config
from hall_reservations.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def _connect(url: str):
    client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=2, socket_timeout=2)
    client.ping()
    return client


def get_redis_client():
    """Shared Redis client for hall locks; None when REDIS_URL is unset or unreachable."""
    global _redis_client

    if _redis_client is None and config.REDIS_URL:
        try:
            _redis_client = _connect(config.REDIS_URL)
            logger.info("Redis connected for hall locks")
        except RedisError as e:
            logger.warning(f"Redis unavailable, hall locks stay in-process: {e}")

    return _redis_client


def reset_redis_client():
    global _redis_client
    _redis_client = None
