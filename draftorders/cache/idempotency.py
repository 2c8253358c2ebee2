"""Idempotency records for draft order writes, stored under the idem: prefix."""

import logging
from typing import Any, Optional

from draftorders.cache.store import DEFAULT_TTL_SECONDS, CacheBackend

logger = logging.getLogger(__name__)

KEY_PREFIX = "idem:"
PENDING = {"status": "pending"}


def is_completed(record: Any) -> bool:
    """A record counts as a prior success only when it names a draft and its invoice."""
    return isinstance(record, dict) and bool(record.get("draftId")) and bool(record.get("invoiceUrl"))


class IdempotencyStore:
    """Previously completed results keyed by caller-supplied operation key.

    Callers check lookup() before the write, claim() the key while working,
    then record() the result (or release() the claim if the write failed).
    """

    def __init__(self, cache: CacheBackend, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def _key(self, op_key: str) -> str:
        return f"{KEY_PREFIX}{op_key}"

    async def lookup(self, op_key: str) -> Optional[dict]:
        """Return the stored result for op_key, or None if absent or still pending."""
        record = await self.cache.get(self._key(op_key))
        if is_completed(record):
            return record
        return None

    async def claim(self, op_key: str, ttl_seconds: Optional[int] = None) -> bool:
        """Reserve op_key with a pending marker. False means another request holds it."""
        return await self.cache.add(self._key(op_key), PENDING, ttl_seconds or self.ttl_seconds)

    async def release(self, op_key: str) -> None:
        """Drop a pending claim; completed records are left in place."""
        record = await self.cache.get(self._key(op_key))
        if record is not None and not is_completed(record):
            await self.cache.delete(self._key(op_key))

    async def record(self, op_key: str, result: dict, ttl_seconds: Optional[int] = None) -> None:
        """Store the successful result for op_key, replacing any pending claim."""
        await self.cache.set(self._key(op_key), result, ttl_seconds or self.ttl_seconds)
        logger.debug(f"Recorded idempotency result for key {op_key}")
