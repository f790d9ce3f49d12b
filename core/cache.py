"""
Redis cache client.

The client is built once from settings when the ``core`` app is ready and
closed at interpreter exit. Callers fetch it with ``get_cache_client()``.
Every operation degrades to a miss (reads) or a no-op (writes) when Redis
is unreachable, so the API keeps working without a cache.
"""

import json
import logging
import time

import redis
from django.apps import apps
from django.conf import settings

logger = logging.getLogger(__name__)


class CacheClient:
    def __init__(self, url="", default_timeout=600, socket_timeout=2.0, prefix="cache:"):
        self.url = url
        self.default_timeout = default_timeout
        self.socket_timeout = socket_timeout
        self.prefix = prefix
        self._client = None

    @property
    def enabled(self):
        return bool(self.url)

    def connect(self):
        """Create the Redis client and ping it. Returns True when Redis answered."""
        if not self.enabled:
            logger.info("REDIS_URL not set, caching disabled")
            return False

        self._client = redis.Redis.from_url(
            self.url,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_timeout,
            decode_responses=True,
        )
        try:
            self._client.ping()
        except redis.RedisError as e:
            # keep the client: redis-py reconnects on the next command
            logger.warning("Redis unavailable, continuing without cache: %s", e)
            return False

        logger.info("Redis connected")
        return True

    def close(self):
        if self._client is None:
            return
        try:
            self._client.close()
        except redis.RedisError as e:
            logger.warning("Error while closing Redis connection: %s", e)
        finally:
            self._client = None

    def _key(self, key):
        return f"{self.prefix}{key}"

    def get(self, key):
        if self._client is None:
            return None
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def set(self, key, value, timeout=None):
        if self._client is None:
            return False
        try:
            self._client.setex(self._key(key), timeout or self.default_timeout, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return False
        return True

    def delete(self, key):
        if self._client is None:
            return False
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False
        return True

    def delete_prefix(self, prefix):
        """Delete every key starting with ``prefix``. Returns the number removed."""
        if self._client is None:
            return 0
        removed = 0
        try:
            for full_key in self._client.scan_iter(match=f"{self._key(prefix)}*"):
                removed += self._client.delete(full_key)
        except redis.RedisError as e:
            logger.warning("Cache invalidation failed for %s*: %s", prefix, e)
        return removed

    def health(self):
        if not self.enabled:
            return {"status": "disabled"}
        if self._client is None:
            return {"status": "unhealthy", "error": "not connected"}

        started = time.monotonic()
        try:
            self._client.ping()
        except redis.RedisError as e:
            return {"status": "unhealthy", "error": str(e)}
        return {
            "status": "healthy",
            "response_time_ms": round((time.monotonic() - started) * 1000, 2),
        }


def build_cache_client():
    return CacheClient(
        url=settings.REDIS_URL,
        default_timeout=settings.CACHE_DEFAULT_TIMEOUT,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )


def get_cache_client():
    return apps.get_app_config("core").cache
