"""
Redis access for the shared reverse-geocoding cache.

Used when several API workers should see the same place names. Redis
being down never fails a request: reads become misses and writes become
no-ops, with a warning in the log.
"""
import logging
import time
from typing import Optional
import redis
from redis.exceptions import RedisError
from core.config import settings

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"

# Lazily created, shared by every cache in the process.
_redis_client: Optional[redis.Redis] = None
# time.monotonic() of the last failed connect, None when healthy.
_last_failure_at: Optional[float] = None


def _in_backoff() -> bool:
    if _last_failure_at is None:
        return False
    return time.monotonic() - _last_failure_at < settings.REDIS_RETRY_BACKOFF_S


def get_redis_client() -> Optional[redis.Redis]:
    """
    Connected client, or None when Redis cannot be reached.

    A failed connect is not retried for REDIS_RETRY_BACKOFF_S seconds;
    calls in that window return None straight away.
    """
    global _redis_client, _last_failure_at

    if _redis_client is not None:
        return _redis_client
    if _in_backoff():
        return None

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        client.ping()
    except RedisError as e:
        _last_failure_at = time.monotonic()
        logger.warning(
            f"Redis unavailable at {settings.REDIS_URL}: {e}. "
            f"Retrying in {settings.REDIS_RETRY_BACKOFF_S}s"
        )
        return None

    logger.info("Redis connection established")
    _redis_client = client
    _last_failure_at = None
    return _redis_client


def reset_redis_client() -> None:
    """Forget the shared client and any backoff so the next call reconnects."""
    global _redis_client, _last_failure_at
    _redis_client = None
    _last_failure_at = None


def cache_key(prefix: str, *parts) -> str:
    """``cache_key("geocode", "1.00000,2.00000")`` -> ``geocode:1.00000,2.00000``."""
    return KEY_SEPARATOR.join([prefix, *(str(p) for p in parts if p is not None)])


def get_cache(key: str) -> Optional[str]:
    client = get_redis_client()
    if client is None:
        return None

    try:
        return client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None


def set_cache(key: str, value: str, ttl: Optional[int] = None) -> bool:
    """
    Store ``value`` under ``key``.

    ``ttl`` in seconds; None falls back to CACHE_TTL_DEFAULT. Returns
    False when nothing was written.
    """
    client = get_redis_client()
    if client is None:
        return False

    try:
        client.setex(key, ttl if ttl is not None else settings.CACHE_TTL_DEFAULT, value)
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def invalidate_pattern(pattern: str) -> int:
    """Delete every key matching ``pattern``; returns how many went."""
    client = get_redis_client()
    if client is None:
        return 0

    try:
        keys = list(client.scan_iter(match=pattern))
        return client.delete(*keys) if keys else 0
    except RedisError as e:
        logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return 0
