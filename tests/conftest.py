"""Pytest configuration and fixtures."""

import asyncio
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

from draftorders.cache.idempotency import IdempotencyStore
from draftorders.cache.store import MemoryCache
from draftorders.upstream.client import UpstreamClient


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeShopify:
    """Fake Admin API for UpstreamClient.call, answering price queries and draft mutations."""

    def __init__(self, prices: Optional[dict[str, Any]] = None):
        self.prices = dict(prices or {})
        self.calls: list[tuple[str, dict]] = []
        self.draft_counter = 0

    @property
    def price_queries(self) -> list[dict]:
        return [variables for query, variables in self.calls if "productVariant" in query]

    @property
    def draft_mutations(self) -> list[tuple[str, dict]]:
        return [(query, variables) for query, variables in self.calls if "draftOrder" in query]

    async def call(self, query: str, variables: Optional[dict] = None) -> dict:
        variables = variables or {}
        self.calls.append((query, variables))
        # Yield like a real network round trip
        await asyncio.sleep(0)

        if "draftOrderCreate" in query:
            self.draft_counter += 1
            draft_id = f"gid://shopify/DraftOrder/{self.draft_counter}"
            return {
                "draftOrderCreate": {
                    "draftOrder": {"id": draft_id, "invoiceUrl": f"https://shop.test/invoices/{self.draft_counter}"},
                    "userErrors": [],
                }
            }
        if "draftOrderUpdate" in query:
            draft_id = variables["id"]
            return {
                "draftOrderUpdate": {
                    "draftOrder": {"id": draft_id, "invoiceUrl": "https://shop.test/invoices/updated"},
                    "userErrors": [],
                }
            }

        data = {}
        for alias, gid in variables.items():
            price = self.prices.get(gid)
            data[alias] = {"id": gid, "price": str(price)} if price is not None else None
        return data


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def memory_cache(clock) -> MemoryCache:
    """In-process cache driven by the fake clock."""
    return MemoryCache(clock=clock)


@pytest.fixture
def idempotency_store(memory_cache) -> IdempotencyStore:
    """Idempotency store over the in-process cache."""
    return IdempotencyStore(memory_cache)


@pytest.fixture
def fake_shopify() -> FakeShopify:
    """Fake Admin API with two catalog variants."""
    return FakeShopify(
        prices={
            "gid://shopify/ProductVariant/X": "50.00",
            "gid://shopify/ProductVariant/Y": "100.00",
        }
    )


@pytest.fixture
def mock_client(fake_shopify) -> AsyncMock:
    """Upstream client whose call() is served by fake_shopify."""
    client = AsyncMock(spec=UpstreamClient)
    client.call.side_effect = fake_shopify.call
    return client
