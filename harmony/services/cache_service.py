"""
Redis Cache Service for Harmony.

Provides a simple interface for caching data with TTL support. The same
client backs the shared rate limiter.
"""
import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import AbstractBackoff
from redis.exceptions import ConnectionError, TimeoutError

from harmony.config import get_settings

logger = logging.getLogger(__name__)


class LinearBackoff(AbstractBackoff):
    """Reconnect delay growing by ``step`` per attempt, capped at ``cap``."""

    def __init__(self, step: float = 0.05, cap: float = 0.5):
        self._step = step
        self._cap = cap

    def reset(self) -> None:
        pass

    def compute(self, failures: int) -> float:
        return min(failures * self._step, self._cap)


class CacheService:
    """Redis cache service with async support."""

    _client: redis.Redis | None = None

    @classmethod
    async def get_client(cls) -> redis.Redis:
        """Get or create Redis client connection."""
        if cls._client is None:
            settings = get_settings()
            cls._client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                retry=Retry(LinearBackoff(), settings.redis_max_retries),
                retry_on_error=[ConnectionError, TimeoutError],
            )
            logger.info("[CacheService] Redis client created")
        return cls._client

    @classmethod
    async def ping(cls) -> bool:
        """Health check; never raises."""
        try:
            client = await cls.get_client()
            return bool(await client.ping())
        except Exception as e:
            logger.error(f"[CacheService] Redis health check failed: {e}")
            return False

    @classmethod
    async def get(cls, key: str) -> str | None:
        """Get a value from cache."""
        try:
            client = await cls.get_client()
            return await client.get(key)
        except Exception as e:
            # If Redis fails, treat it as a cache miss
            logger.warning(f"[CacheService] get failed for {key}: {e}")
            return None

    @classmethod
    async def set(cls, key: str, value: str, ttl: int = 300) -> bool:
        """
        Set a value in cache with TTL.

        Args:
            key: Cache key
            value: Value to store (string)
            ttl: Time to live in seconds (default 5 minutes)

        Returns:
            True if successful, False otherwise
        """
        try:
            client = await cls.get_client()
            await client.set(key, value, ex=ttl)
            return True
        except Exception as e:
            logger.warning(f"[CacheService] set failed for {key}: {e}")
            return False

    @classmethod
    async def get_json(cls, key: str) -> Any | None:
        """Get a JSON value from cache."""
        value = await cls.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return None
        return None

    @classmethod
    async def set_json(cls, key: str, value: Any, ttl: int = 300) -> bool:
        """Set a JSON value in cache. Datetimes are stored as ISO strings."""
        try:
            return await cls.set(key, json.dumps(value, default=str), ttl)
        except (TypeError, ValueError):
            return False

    @classmethod
    async def delete_pattern(cls, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Pattern to match (e.g., "popular:artists:*")

        Returns:
            Number of keys deleted
        """
        try:
            client = await cls.get_client()
            keys = []
            async for key in client.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                return await client.delete(*keys)
            return 0
        except Exception:
            return 0

    @classmethod
    async def close(cls) -> None:
        """Close Redis connection."""
        if cls._client:
            await cls._client.aclose()
            cls._client = None
            logger.info("[CacheService] Redis connection closed")


# Cache key prefixes
class CacheKeys:
    """Cache key prefixes for different data types."""

    POPULAR_ARTISTS = "popular:artists:"  # TTL: 5 min
    RATE_LIMIT = "ratelimit:"  # TTL: rate window
