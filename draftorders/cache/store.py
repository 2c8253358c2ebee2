"""Key/value cache with per-entry TTL.

Two interchangeable backends share one async contract: an in-process dict
(expiry checked on read) and Redis. When Redis is configured it is the only
store; the in-process map is not consulted.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from redis import asyncio as aioredis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


class CacheBackend(ABC):
    """Async cache contract used by the price resolver and idempotency store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        """Store a value for ttl_seconds."""

    @abstractmethod
    async def add(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> bool:
        """Store a value only if the key is absent. Returns True when stored."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present."""

    async def close(self) -> None:
        """Release backend resources."""


@dataclass
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class MemoryCache(CacheBackend):
    """Process-local cache.

    Expired entries are purged when read and swept on every write. Operations
    never await, so each one runs to completion without interleaving under
    asyncio.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def _cleanup_expired(self) -> None:
        """Remove all expired entries."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

    async def get(self, key: str) -> Optional[Any]:
        entry = self._live_entry(key)
        return entry.value if entry else None

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._cleanup_expired()
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    async def add(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> bool:
        self._cleanup_expired()
        if self._live_entry(key) is not None:
            return False
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
        return True

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        """Return the number of stored entries, expired or not."""
        return len(self._entries)


class RedisCache(CacheBackend):
    """Shared cache backed by Redis. Values are stored as JSON with EX expiry."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        """Create a cache from a redis:// URL."""
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        await self.client.set(key, json.dumps(value), ex=ttl_seconds)

    async def add(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> bool:
        stored = await self.client.set(key, json.dumps(value), ex=ttl_seconds, nx=True)
        return bool(stored)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def close(self) -> None:
        await self.client.aclose()


def build_cache(redis_url: Optional[str] = None) -> CacheBackend:
    """Pick the cache backend: Redis when a URL is configured, memory otherwise."""
    if redis_url:
        logger.info("Using Redis cache backend")
        return RedisCache.from_url(redis_url)
    logger.info("Using in-process cache backend")
    return MemoryCache()
