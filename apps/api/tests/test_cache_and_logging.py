"""
Tests for the Redis helpers and the JSON log formatter.
"""
import json
import logging
from unittest.mock import MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from core import cache
from core.config import settings
from core.logging import JSONFormatter, log_fields


class TestRedisHelpers:

    def test_cache_key_skips_none(self):
        assert cache.cache_key("geocode", "1.00000,2.00000") == "geocode:1.00000,2.00000"
        assert cache.cache_key("geocode", None, "x") == "geocode:x"

    def test_set_uses_default_ttl(self):
        client = MagicMock()
        with patch("core.cache.get_redis_client", return_value=client):
            assert cache.set_cache("geocode:k", "Bree") is True

        client.setex.assert_called_once_with("geocode:k", settings.CACHE_TTL_DEFAULT, "Bree")

    def test_get_round_trips_through_client(self):
        client = MagicMock()
        client.get.return_value = "Bree"
        with patch("core.cache.get_redis_client", return_value=client):
            assert cache.get_cache("geocode:k") == "Bree"

    def test_errors_degrade_to_miss(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("gone")
        client.setex.side_effect = RedisConnectionError("gone")
        with patch("core.cache.get_redis_client", return_value=client):
            assert cache.get_cache("geocode:k") is None
            assert cache.set_cache("geocode:k", "Bree") is False

    def test_invalidate_pattern(self):
        client = MagicMock()
        client.scan_iter.return_value = iter(["geocode:a", "geocode:b"])
        client.delete.return_value = 2
        with patch("core.cache.get_redis_client", return_value=client):
            assert cache.invalidate_pattern("geocode:*") == 2

        client.delete.assert_called_once_with("geocode:a", "geocode:b")

    def test_unreachable_redis_returns_none(self):
        cache.reset_redis_client()
        broken = MagicMock()
        broken.ping.side_effect = RedisConnectionError("refused")
        try:
            with patch("core.cache.redis.from_url", return_value=broken):
                assert cache.get_redis_client() is None
        finally:
            cache.reset_redis_client()

    def test_failed_connect_is_not_retried_during_backoff(self, monkeypatch):
        monkeypatch.setattr(settings, "REDIS_RETRY_BACKOFF_S", 60.0)
        cache.reset_redis_client()
        broken = MagicMock()
        broken.ping.side_effect = RedisConnectionError("refused")
        try:
            with patch("core.cache.redis.from_url", return_value=broken) as from_url:
                assert cache.get_cache("geocode:k") is None
                assert cache.get_cache("geocode:k") is None
                assert cache.set_cache("geocode:k", "Bree") is False

            from_url.assert_called_once()
        finally:
            cache.reset_redis_client()

    def test_reconnects_after_backoff(self, monkeypatch):
        monkeypatch.setattr(settings, "REDIS_RETRY_BACKOFF_S", 0.0)
        cache.reset_redis_client()
        broken = MagicMock()
        broken.ping.side_effect = RedisConnectionError("refused")
        healthy = MagicMock()
        healthy.get.return_value = "Bree"
        try:
            with patch("core.cache.redis.from_url", side_effect=[broken, healthy]) as from_url:
                assert cache.get_cache("geocode:k") is None
                assert cache.get_cache("geocode:k") == "Bree"

            assert from_url.call_count == 2
        finally:
            cache.reset_redis_client()


class TestJSONFormatter:

    def _record(self, **extra):
        record = logging.LogRecord(
            name="services.map_activity",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Created map activity %s",
            args=(3,),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_message_and_level(self):
        data = json.loads(JSONFormatter().format(self._record()))
        assert data["message"] == "Created map activity 3"
        assert data["level"] == "INFO"
        assert data["logger"] == "services.map_activity"

    def test_merges_extra_fields(self):
        record = self._record(**log_fields(user_id=1, steps=1006))
        data = json.loads(JSONFormatter().format(record))
        assert data["user_id"] == 1
        assert data["steps"] == 1006


def test_error_body_carries_code(client):
    response = client.get("/api/users/999")
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found: 999", "code": "NOT_FOUND"}


def test_forbidden_body_carries_code(client):
    response = client.delete("/api/users/1")
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
