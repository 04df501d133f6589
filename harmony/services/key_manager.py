"""
API key management for external generation providers.

Keys are read through a small in-process cache, checked for obviously bad
formats, and paired with per-service sliding-window rate limiters. Nothing
here talks to the providers themselves.
"""
import logging
import os
import re
import threading
import time
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis

from harmony.config import Settings
from harmony.core.exceptions import ApiKeyNotFoundError
from harmony.services.cache_service import CacheKeys
from harmony.services.key_vault import KeyVault

logger = logging.getLogger(__name__)

KNOWN_SERVICES = ("gemini", "nanobanana", "seedance", "openai")
MIN_KEY_LENGTH = 20
MAX_KEY_LENGTH = 100
INVALID_KEY_PATTERNS = [
    re.compile(r"your-.*-key", re.IGNORECASE),
    re.compile(r"placeholder", re.IGNORECASE),
    re.compile(r"demo", re.IGNORECASE),
    re.compile(r"test", re.IGNORECASE),
]

Clock = Callable[[], float]
KeySource = Callable[[str], Optional[str]]


@dataclass
class CachedKey:
    key: str
    timestamp: float


@dataclass
class ServiceHealth:
    healthy: bool
    message: Optional[str] = None
    error: Optional[str] = None


def settings_key_source(settings: Settings) -> KeySource:
    """Read keys from Settings, falling back to <SERVICE>_API_KEY in the environment."""
    def lookup(service_name: str) -> Optional[str]:
        return settings.provider_api_key(service_name) or os.environ.get(f"{service_name.upper()}_API_KEY")
    return lookup


class SlidingWindowRateLimiter:
    """
    Admit at most ``limit`` requests in any trailing ``window`` seconds.

    The check and the record happen under one lock, so the limiter can be
    shared between threads as well as coroutines.
    """

    def __init__(self, service_name: str, limit: int, window: float, clock: Clock = time.monotonic):
        self.service_name = service_name
        self.limit = limit
        self.window = window
        self._clock = clock
        self._requests: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        window_start = now - self.window
        while self._requests and self._requests[0] < window_start:
            self._requests.popleft()

    def can_make_request(self) -> bool:
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._requests) >= self.limit:
                return False
            self._requests.append(now)
            return True

    def get_remaining_requests(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return max(0, self.limit - len(self._requests))

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


class RedisRateLimiter:
    """
    Same sliding window kept in a Redis sorted set, for multi-process deployments.

    Each request is a member scored by its timestamp; pruning, counting and
    adding run in one MULTI/EXEC pipeline. A denied request is removed again
    so it does not count against the window.
    """

    def __init__(
        self,
        client: redis.Redis,
        service_name: str,
        limit: int,
        window: float,
        clock: Clock = time.time,
    ):
        self.client = client
        self.service_name = service_name
        self.limit = limit
        self.window = window
        self._clock = clock
        self.key = f"{CacheKeys.RATE_LIMIT}{service_name}"

    async def can_make_request(self) -> bool:
        now = self._clock()
        member = f"{now}:{uuid.uuid4().hex}"
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(self.key, "-inf", f"({now - self.window}")
            pipe.zcard(self.key)
            pipe.zadd(self.key, {member: now})
            pipe.expire(self.key, max(1, int(self.window) + 1))
            _, count, _, _ = await pipe.execute()

        if count >= self.limit:
            await self.client.zrem(self.key, member)
            return False
        return True

    async def get_remaining_requests(self) -> int:
        now = self._clock()
        await self.client.zremrangebyscore(self.key, "-inf", f"({now - self.window}")
        count = await self.client.zcard(self.key)
        return max(0, self.limit - count)

    async def reset(self) -> None:
        await self.client.delete(self.key)


class AIKeyManager:
    """Read-through cache of provider keys plus rate limiting helpers."""

    def __init__(
        self,
        key_source: KeySource,
        cache_ttl: float = 3600.0,
        clock: Clock = time.monotonic,
        vault: Optional[KeyVault] = None,
    ):
        self._key_source = key_source
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._vault = vault
        self._cache: dict[str, CachedKey] = {}
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIKeyManager":
        return cls(
            key_source=settings_key_source(settings),
            cache_ttl=settings.ai_cache_ttl_seconds,
            vault=KeyVault(settings.ai_key_encryption_key),
        )

    def get_api_key(self, service_name: str) -> str:
        """
        Return the key for a service, cache first.

        Stale entries are not deleted, only bypassed; a successful read from
        the source overwrites them.
        """
        now = self._clock()
        with self._lock:
            cached = self._cache.get(service_name)
            if cached and now - cached.timestamp < self.cache_ttl:
                return cached.key

        api_key = self._key_source(service_name)
        if not api_key:
            raise ApiKeyNotFoundError(service_name)

        with self._lock:
            self._cache[service_name] = CachedKey(key=api_key, timestamp=self._clock())
        return api_key

    def validate_api_key(self, api_key: Optional[str], service_name: str) -> bool:
        """Structural check only; the provider is never contacted."""
        if not api_key or not isinstance(api_key, str):
            return False
        if len(api_key) < MIN_KEY_LENGTH or len(api_key) > MAX_KEY_LENGTH:
            return False
        return not any(pattern.search(api_key) for pattern in INVALID_KEY_PATTERNS)

    def create_rate_limiter(
        self, service_name: str, limit: int, window: float
    ) -> SlidingWindowRateLimiter:
        return SlidingWindowRateLimiter(service_name, limit, window, clock=self._clock)

    def get_rate_limiter(self, service_name: str, limit: int, window: float) -> SlidingWindowRateLimiter:
        """Return the limiter owned by this manager for a service, creating it once."""
        with self._lock:
            limiter = self._limiters.get(service_name)
            if limiter is None:
                limiter = self.create_rate_limiter(service_name, limit, window)
                self._limiters[service_name] = limiter
            return limiter

    def create_shared_rate_limiter(
        self, client: redis.Redis, service_name: str, limit: int, window: float
    ) -> RedisRateLimiter:
        return RedisRateLimiter(client, service_name, limit, window)

    async def check_service_health(self, service_name: str) -> ServiceHealth:
        try:
            api_key = self.get_api_key(service_name)
        except ApiKeyNotFoundError as e:
            return ServiceHealth(healthy=False, error=str(e))

        if not self.validate_api_key(api_key, service_name):
            return ServiceHealth(healthy=False, error="Invalid API key format")

        return ServiceHealth(healthy=True, message="Service key is valid")

    async def get_all_service_statuses(self) -> dict[str, ServiceHealth]:
        statuses = {}
        for service in KNOWN_SERVICES:
            statuses[service] = await self.check_service_health(service)
        return statuses

    def encrypt_api_key(self, api_key: str) -> str:
        return self._require_vault().encrypt(api_key)

    def decrypt_api_key(self, token: str, service_name: str = "unknown") -> str:
        return self._require_vault().decrypt(token, service_name)

    def _require_vault(self) -> KeyVault:
        if self._vault is None:
            raise RuntimeError("AIKeyManager was created without a KeyVault")
        return self._vault

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def get_cache_stats(self) -> dict:
        now = self._clock()
        with self._lock:
            active = sum(1 for e in self._cache.values() if now - e.timestamp < self.cache_ttl)
            total = len(self._cache)
        return {
            "total_entries": total,
            "active_entries": active,
            "expired_entries": total - active,
            "cache_ttl": self.cache_ttl,
        }
