"""Tests for DraftOrderService."""

import asyncio

import pytest

from draftorders.errors import (
    IdempotencyConflictError,
    IncompleteResultError,
    MissingReferenceError,
    OrderValidationError,
    UpstreamRejectionError,
    UpstreamTransientError,
)
from draftorders.orders.models import DraftOrderRequest, DraftOrderResult
from draftorders.orders.service import DraftOrderService
from draftorders.pricing.resolver import PriceResolver

X = "gid://shopify/ProductVariant/X"
Y = "gid://shopify/ProductVariant/Y"


@pytest.fixture
def service(mock_client, memory_cache, idempotency_store) -> DraftOrderService:
    resolver = PriceResolver(mock_client, memory_cache)
    return DraftOrderService(mock_client, resolver, idempotency_store)


def make_request(**kwargs) -> DraftOrderRequest:
    kwargs.setdefault("items", [{"variantId": "X", "quantity": 2, "grade": "B", "cording": True}])
    return DraftOrderRequest.model_validate(kwargs)


class TestCreateOrUpdateDraftOrder:
    """Tests for create_or_update_draft_order."""

    @pytest.mark.asyncio
    async def test_end_to_end_example(self, service, fake_shopify):
        """X at 50.00, grade B, corded: a variant line discounted 23.30 per unit."""
        result = await service.create_or_update_draft_order(make_request(idempotencyKey="k1"))

        assert result == DraftOrderResult(
            draft_id="gid://shopify/DraftOrder/1",
            invoice_url="https://shop.test/invoices/1",
        )
        assert fake_shopify.price_queries == [{"v0": X}]

        query, variables = fake_shopify.draft_mutations[0]
        assert "draftOrderCreate" in query
        line_item = variables["input"]["lineItems"][0]
        assert line_item["variantId"] == X
        assert line_item["quantity"] == 2
        assert line_item["appliedDiscount"]["value"] == 23.30
        assert line_item["customAttributes"][:3] == [
            {"key": "Fabric", "value": ""},
            {"key": "Grade", "value": "B"},
            {"key": "Cording", "value": "Yes"},
        ]

    @pytest.mark.asyncio
    async def test_replay_returns_stored_result_without_second_write(self, service, fake_shopify):
        first = await service.create_or_update_draft_order(make_request(idempotencyKey="k1"))
        calls_after_first = len(fake_shopify.calls)

        second = await service.create_or_update_draft_order(make_request(idempotencyKey="k1"))

        assert second == first
        assert len(fake_shopify.calls) == calls_after_first
        assert len(fake_shopify.draft_mutations) == 1

    @pytest.mark.asyncio
    async def test_without_key_each_call_writes(self, service, fake_shopify):
        first = await service.create_or_update_draft_order(make_request())
        second = await service.create_or_update_draft_order(make_request())

        assert first.draft_id != second.draft_id
        assert len(fake_shopify.draft_mutations) == 2

    @pytest.mark.asyncio
    async def test_replay_after_ttl_writes_again(self, service, fake_shopify, clock):
        await service.create_or_update_draft_order(make_request(idempotencyKey="k1"))
        clock.advance(601)
        await service.create_or_update_draft_order(make_request(idempotencyKey="k1"))

        assert len(fake_shopify.draft_mutations) == 2

    @pytest.mark.asyncio
    async def test_empty_items_rejected_before_any_call(self, service, mock_client):
        with pytest.raises(OrderValidationError, match="No items"):
            await service.create_or_update_draft_order(make_request(items=[]))

        mock_client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_note_and_tags(self, service, fake_shopify):
        await service.create_or_update_draft_order(make_request(tags=["vip", "rush"]))
        await service.create_or_update_draft_order(make_request(note="Call before shipping"))

        first_input = fake_shopify.draft_mutations[0][1]["input"]
        second_input = fake_shopify.draft_mutations[1][1]["input"]
        assert first_input["note"] == "Fabric tool"
        assert first_input["tags"] == ["fabric-tool", "vip", "rush"]
        assert second_input["note"] == "Call before shipping"
        assert second_input["tags"] == ["fabric-tool"]

    @pytest.mark.asyncio
    async def test_prev_draft_id_updates_existing_draft(self, service, fake_shopify):
        result = await service.create_or_update_draft_order(
            make_request(prevDraftId="gid://shopify/DraftOrder/42")
        )

        query, variables = fake_shopify.draft_mutations[0]
        assert "draftOrderUpdate" in query
        assert variables["id"] == "gid://shopify/DraftOrder/42"
        assert len(variables["input"]["lineItems"]) == 1
        assert result.draft_id == "gid://shopify/DraftOrder/42"

    @pytest.mark.asyncio
    async def test_mixed_branches_in_one_draft(self, service, fake_shopify):
        request = make_request(
            items=[
                {"variantId": "X", "grade": "A"},
                {"variantId": "Y", "fabricName": "Velvet", "unitPriceCents": 15000},
            ]
        )

        await service.create_or_update_draft_order(request)

        line_items = fake_shopify.draft_mutations[0][1]["input"]["lineItems"]
        assert line_items[0]["variantId"] == X
        assert line_items[1]["custom"] is True
        assert line_items[1]["originalUnitPrice"] == 150.00
        assert fake_shopify.price_queries == [{"v0": X, "v1": Y}]

    @pytest.mark.asyncio
    async def test_missing_variant_aborts_without_write(self, service, fake_shopify):
        with pytest.raises(MissingReferenceError):
            await service.create_or_update_draft_order(make_request(items=[{"variantId": "GONE"}]))

        assert fake_shopify.draft_mutations == []

    @pytest.mark.asyncio
    async def test_bad_item_ref_rejected(self, service, mock_client):
        with pytest.raises(OrderValidationError):
            await service.create_or_update_draft_order(make_request(items=[{"variantId": " "}]))

        mock_client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_releases_claim(self, service, fake_shopify, idempotency_store):
        request = make_request(items=[{"variantId": "GONE"}], idempotencyKey="k2")
        with pytest.raises(MissingReferenceError):
            await service.create_or_update_draft_order(request)

        assert await idempotency_store.claim("k2") is True

    @pytest.mark.asyncio
    async def test_in_flight_key_conflicts(self, service, idempotency_store, mock_client):
        await idempotency_store.claim("k3")

        with pytest.raises(IdempotencyConflictError):
            await service.create_or_update_draft_order(make_request(idempotencyKey="k3"))

        mock_client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_same_key_writes_once(self, service, fake_shopify):
        results = await asyncio.gather(
            service.create_or_update_draft_order(make_request(idempotencyKey="k4")),
            service.create_or_update_draft_order(make_request(idempotencyKey="k4")),
            return_exceptions=True,
        )

        assert len(fake_shopify.draft_mutations) == 1
        assert sum(isinstance(r, IdempotencyConflictError) for r in results) == 1

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(self, service, mock_client):
        mock_client.call.side_effect = UpstreamTransientError("429 rate limited", status_code=429)

        with pytest.raises(UpstreamTransientError):
            await service.create_or_update_draft_order(make_request(idempotencyKey="k5"))


class TestUpsertDraft:
    """Tests for upsert_draft response handling."""

    @pytest.mark.asyncio
    async def test_user_errors_raise(self, service, mock_client):
        mock_client.call.side_effect = None
        mock_client.call.return_value = {
            "draftOrderCreate": {
                "draftOrder": None,
                "userErrors": [{"field": ["lineItems"], "message": "Variant is not available"}],
            }
        }

        with pytest.raises(UpstreamRejectionError, match="Variant is not available"):
            await service.upsert_draft([], note="n", tags=[])

    @pytest.mark.asyncio
    async def test_missing_invoice_url_raises(self, service, mock_client):
        mock_client.call.side_effect = None
        mock_client.call.return_value = {
            "draftOrderCreate": {"draftOrder": {"id": "gid://shopify/DraftOrder/1", "invoiceUrl": None}, "userErrors": []}
        }

        with pytest.raises(IncompleteResultError, match="No invoiceUrl"):
            await service.upsert_draft([], note="n", tags=[])

    @pytest.mark.asyncio
    async def test_incomplete_result_is_not_recorded(self, service, mock_client, fake_shopify, idempotency_store):
        async def no_invoice(query, variables=None):
            if "draftOrderCreate" in query:
                return {"draftOrderCreate": {"draftOrder": {"id": "d"}, "userErrors": []}}
            return await fake_shopify.call(query, variables)

        mock_client.call.side_effect = no_invoice

        with pytest.raises(IncompleteResultError):
            await service.create_or_update_draft_order(make_request(idempotencyKey="k6"))

        assert await idempotency_store.lookup("k6") is None
