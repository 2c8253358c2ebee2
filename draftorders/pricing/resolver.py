"""Batch lookup of catalog variant prices with caching."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from draftorders.cache.store import DEFAULT_TTL_SECONDS, CacheBackend
from draftorders.errors import MissingReferenceError, OrderValidationError, UpstreamRejectionError
from draftorders.upstream.client import UpstreamClient
from draftorders.upstream.documents import variant_field_alias, variant_prices_query

logger = logging.getLogger(__name__)

PRICE_KEY_PREFIX = "price:"


def price_cache_key(item_ref: str) -> str:
    """Cache key for a variant's catalog price."""
    return f"{PRICE_KEY_PREFIX}{item_ref}"


def _parse_price(item_ref: str, raw: Any) -> Decimal:
    """Read an upstream price string as a finite Decimal.

    Raises:
        UpstreamRejectionError: If the value is not a finite decimal
    """
    try:
        price = Decimal(str(raw))
    except InvalidOperation:
        raise UpstreamRejectionError(f"Invalid price for {item_ref}: {raw!r}")
    if not price.is_finite():
        raise UpstreamRejectionError(f"Invalid price for {item_ref}: {raw!r}")
    return price


class PriceResolver:
    """Resolves base prices for variants, consulting the cache before the API."""

    def __init__(
        self,
        client: UpstreamClient,
        cache: CacheBackend,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_batch_size: int = 100,
    ):
        self.client = client
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.max_batch_size = max_batch_size

    async def resolve_prices(self, item_refs: Iterable[str]) -> dict[str, Decimal]:
        """Return the base price of every requested variant.

        Cache misses are fetched with a single batched query.

        Args:
            item_refs: Normalized variant IDs; duplicates are ignored

        Returns:
            Dictionary mapping variant ID to base price

        Raises:
            OrderValidationError: If more than max_batch_size distinct variants are requested
            MissingReferenceError: If the API does not return one of the variants
        """
        unique_refs = list(dict.fromkeys(item_refs))
        if len(unique_refs) > self.max_batch_size:
            raise OrderValidationError(
                f"Cannot price {len(unique_refs)} variants. "
                f"Maximum allowed is {self.max_batch_size} per request."
            )

        prices: dict[str, Decimal] = {}
        missing: list[str] = []
        for ref in unique_refs:
            cached = await self.cache.get(price_cache_key(ref))
            if cached is not None:
                prices[ref] = Decimal(str(cached))
            else:
                missing.append(ref)

        if not missing:
            return prices

        logger.debug(f"Price cache: {len(prices)} hits, {len(missing)} misses")

        variables = {variant_field_alias(i): ref for i, ref in enumerate(missing)}
        data = await self.client.call(variant_prices_query(len(missing)), variables)

        fetched: dict[str, Decimal] = {}
        for i, ref in enumerate(missing):
            node = data.get(variant_field_alias(i))
            if not node:
                raise MissingReferenceError(ref)
            fetched[ref] = _parse_price(ref, node.get("price"))

        for ref, price in fetched.items():
            await self.cache.set(price_cache_key(ref), str(price), self.ttl_seconds)

        prices.update(fetched)
        return prices
