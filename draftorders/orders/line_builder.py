"""Builds DraftOrderLineItemInput payloads from priced request lines.

A line whose desired price is at or below the catalog price keeps its variant
and carries a per-unit FIXED_AMOUNT discount. A line priced above the catalog
becomes a custom line at the desired price, since a discount cannot be
negative.
"""

import logging
from decimal import Decimal
from typing import Any

from draftorders.orders.models import NormalizedLine
from draftorders.pricing.engine import round_cents, to_decimal, unit_price

logger = logging.getLogger(__name__)

# Property keys that mark a line as carrying a client-chosen fabric price
CUSTOM_PRICE_KEYS = frozenset({"fabric", "selected fabric name"})

DISCOUNT_TITLE = "DISCOUNT"
CUSTOM_LINE_TITLE = "Custom item"


def looks_custom_priced(label: str, properties: list[tuple[str, str]]) -> bool:
    """True when the line names a fabric, via its label or a recognized property key."""
    if label:
        return True
    return any(key.strip().lower() in CUSTOM_PRICE_KEYS for key, _ in properties)


def choose_unit_price(line: NormalizedLine, computed: Decimal) -> Decimal:
    """Prefer the client's price for fabric lines when it is positive."""
    if (
        looks_custom_priced(line.label, line.properties)
        and line.unit_price_cents is not None
        and line.unit_price_cents > 0
    ):
        return line.unit_price_cents / 100
    return computed


def custom_attributes(line: NormalizedLine) -> list[dict[str, str]]:
    """Fabric, grade and cording first, then the request's passthrough properties."""
    attributes = [
        {"key": "Fabric", "value": line.label},
        {"key": "Grade", "value": line.grade},
        {"key": "Cording", "value": "Yes" if line.corded else "No"},
    ]
    attributes.extend({"key": key, "value": value} for key, value in line.properties)
    return attributes


def _money(value: Decimal) -> float:
    # GraphQL Float inputs
    return float(round_cents(value))


def build_line_item(line: NormalizedLine, base_price) -> dict[str, Any]:
    """Build the upstream line item for one request line.

    Args:
        line: Normalized request line
        base_price: Catalog price of the line's variant

    Returns:
        A DraftOrderLineItemInput dict, either variant-linked or custom
    """
    base = to_decimal(base_price)
    computed = unit_price(base, line.grade, line.corded)
    final = choose_unit_price(line, computed)

    logger.debug(f"[price] {line.item_ref}: variant={base} computed={computed} used={final}")

    if final <= base:
        item: dict[str, Any] = {
            "variantId": line.item_ref,
            "quantity": line.quantity,
        }
        discount = base - final
        if discount > 0:
            item["appliedDiscount"] = {
                "title": DISCOUNT_TITLE,
                "valueType": "FIXED_AMOUNT",
                "value": _money(discount),
            }
        item["customAttributes"] = custom_attributes(line)
        return item

    return {
        "title": line.label or CUSTOM_LINE_TITLE,
        "custom": True,
        "quantity": line.quantity,
        "originalUnitPrice": _money(final),
        "customAttributes": custom_attributes(line),
    }


def build_line_items(lines: list[NormalizedLine], prices: dict[str, Decimal]) -> list[dict[str, Any]]:
    """Build line items for every line, in request order."""
    return [build_line_item(line, prices[line.item_ref]) for line in lines]
