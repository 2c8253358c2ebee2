# Cache module
from draftorders.cache.idempotency import IdempotencyStore
from draftorders.cache.store import CacheBackend, MemoryCache, RedisCache, build_cache

__all__ = [
    "CacheBackend",
    "IdempotencyStore",
    "MemoryCache",
    "RedisCache",
    "build_cache",
]
