"""Draft order orchestration: idempotency, pricing, line building and upsert."""

import logging
from typing import Any, Optional

from draftorders.cache.idempotency import IdempotencyStore
from draftorders.errors import (
    IdempotencyConflictError,
    IncompleteResultError,
    OrderValidationError,
    UpstreamRejectionError,
)
from draftorders.orders.line_builder import build_line_items
from draftorders.orders.models import DraftOrderRequest, DraftOrderResult, NormalizedLine
from draftorders.pricing.resolver import PriceResolver
from draftorders.upstream.client import UpstreamClient
from draftorders.upstream.documents import DRAFT_ORDER_CREATE, DRAFT_ORDER_UPDATE

logger = logging.getLogger(__name__)


class DraftOrderService:
    """Creates or replaces a draft order from a priced request."""

    def __init__(
        self,
        client: UpstreamClient,
        resolver: PriceResolver,
        idempotency: IdempotencyStore,
        default_note: str = "Fabric tool",
        default_tag: Optional[str] = "fabric-tool",
    ):
        self.client = client
        self.resolver = resolver
        self.idempotency = idempotency
        self.default_note = default_note
        self.default_tag = default_tag

    async def create_or_update_draft_order(self, request: DraftOrderRequest) -> DraftOrderResult:
        """Price the request's lines and create (or update) its draft order.

        A replayed idempotency key returns the stored result without any
        upstream call.

        Args:
            request: Lines plus optional note, tags, idempotency key and prior draft ID

        Returns:
            The draft's ID and invoice URL

        Raises:
            OrderValidationError: If the request has no lines or an unusable line
            IdempotencyConflictError: If the key is held by an in-flight request
            DraftOrderError: Any pricing or upstream failure
        """
        if not request.items:
            raise OrderValidationError("No items")

        key = request.idempotency_key
        if key:
            existing = await self.idempotency.lookup(key)
            if existing:
                logger.info(f"Idempotent replay for key {key}: {existing['draftId']}")
                return DraftOrderResult.from_record(existing)
            if not await self.idempotency.claim(key):
                raise IdempotencyConflictError(key)

        try:
            result = await self._price_and_upsert(request)
        except Exception:
            if key:
                await self.idempotency.release(key)
            raise

        if key:
            await self.idempotency.record(key, result.to_record())
        return result

    async def _price_and_upsert(self, request: DraftOrderRequest) -> DraftOrderResult:
        lines = [NormalizedLine.from_request(item) for item in request.items]
        prices = await self.resolver.resolve_prices(line.item_ref for line in lines)
        line_items = build_line_items(lines, prices)

        tags = ([self.default_tag] if self.default_tag else []) + list(request.tags)
        return await self.upsert_draft(
            line_items,
            note=request.note or self.default_note,
            tags=tags,
            prev_draft_id=request.prev_draft_id,
        )

    async def upsert_draft(
        self,
        line_items: list[dict[str, Any]],
        note: str,
        tags: list[str],
        prev_draft_id: Optional[str] = None,
    ) -> DraftOrderResult:
        """Create a draft, or replace every line of prev_draft_id when given.

        Raises:
            UpstreamRejectionError: If the mutation reports userErrors
            IncompleteResultError: If no invoice URL comes back
        """
        draft_input = {"lineItems": line_items, "note": note, "tags": tags}
        if prev_draft_id:
            data = await self.client.call(DRAFT_ORDER_UPDATE, {"id": prev_draft_id, "input": draft_input})
            payload = data.get("draftOrderUpdate") or {}
        else:
            data = await self.client.call(DRAFT_ORDER_CREATE, {"input": draft_input})
            payload = data.get("draftOrderCreate") or {}

        user_errors = payload.get("userErrors") or []
        if user_errors:
            raise UpstreamRejectionError(user_errors[0].get("message") or "Draft order rejected")

        draft = payload.get("draftOrder") or {}
        if not draft.get("invoiceUrl") or not draft.get("id"):
            raise IncompleteResultError("No invoiceUrl returned")

        logger.info(
            f"{'Updated' if prev_draft_id else 'Created'} draft order {draft['id']}",
            extra={"line_count": len(line_items)},
        )
        return DraftOrderResult(draft_id=draft["id"], invoice_url=draft["invoiceUrl"])
