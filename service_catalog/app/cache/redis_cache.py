"""
Redis cache store for Catalog Service.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.errors import TransportError
from shared.latency import DelayStrategy, fixed_delay
from shared.logging import get_logger

DEFAULT_CACHE_LATENCY_MS = 2
DEFAULT_KEY_PREFIX = "product:"

TRANSPORT_FAILURES = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisCache:
    """Get/set-with-expiry/flush over Redis with simulated latency.

    Expiry is left to Redis (``SET key value EX ttl``): an absent key is a
    miss whether it expired or was never written.
    """

    def __init__(
        self,
        redis_url: str,
        delay: Optional[DelayStrategy] = None,
        client: Optional[redis.Redis] = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        self.redis_url = redis_url
        self.delay = delay or fixed_delay(DEFAULT_CACHE_LATENCY_MS)
        self.key_prefix = key_prefix
        self.logger = get_logger("catalog.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Connect and verify the Redis connection."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30
                )
            await self.redis.ping()
            self.logger.info("Redis cache started")

        except TRANSPORT_FAILURES as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise TransportError("redis", str(e))

    async def stop(self):
        """Close the Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise TransportError("redis", "cache not started")
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        """Return the cached payload for a key, or ``None`` when absent."""
        await self.delay()
        try:
            value = await self._client().get(self._make_key(key))
        except TRANSPORT_FAILURES as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            raise TransportError("redis", str(e), {"key": key})

        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl_seconds: int):
        """Store a payload that Redis expires after ``ttl_seconds``."""
        await self.delay()
        try:
            await self._client().set(self._make_key(key), value, ex=ttl_seconds)
        except TRANSPORT_FAILURES as e:
            self.logger.error("Cache set error", key=key, error=str(e))
            raise TransportError("redis", str(e), {"key": key})

        self.logger.debug("Cached value", key=key, ttl=ttl_seconds)

    async def flush(self):
        """Remove every key with Redis' atomic FLUSHDB."""
        try:
            await self._client().flushdb()
        except TRANSPORT_FAILURES as e:
            self.logger.error("Cache flush error", error=str(e))
            raise TransportError("redis", str(e))

        self.logger.info("Cache flushed")

    async def health_check(self) -> bool:
        """Check Redis health."""
        if self.redis is None:
            return False
        try:
            await self.redis.ping()
            return True
        except TRANSPORT_FAILURES:
            return False
