"""Draft order request/response models."""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from draftorders.errors import OrderValidationError
from draftorders.pricing.engine import normalize_grade

VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"


class OrderLineRequest(BaseModel):
    """One requested line as sent by the storefront.

    Optional fields are accepted loosely; NormalizedLine.from_request applies
    defaults to malformed values. Legacy camelCase names are accepted too.
    """

    item_ref: Union[str, int] = Field(
        ..., validation_alias=AliasChoices("item_ref", "variantId"), description="Variant ID or GID"
    )
    quantity: Any = Field(1, description="Quantity, floored at 1")
    grade: Any = Field("A", description="Fabric grade A-F")
    corded: Any = Field(False, validation_alias=AliasChoices("corded", "cording"))
    label: Any = Field("", validation_alias=AliasChoices("label", "fabricName"))
    properties: Any = Field(default_factory=list, description="Passthrough [{key, value}] attributes")
    unit_price_cents: Any = Field(
        None,
        validation_alias=AliasChoices("unit_price_cents", "unitPriceCents"),
        description="Client-asserted unit price in cents",
    )


class DraftOrderRequest(BaseModel):
    """Request model for creating or updating a draft order."""

    items: list[OrderLineRequest] = Field(default_factory=list)
    note: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    idempotency_key: Optional[str] = Field(
        None, validation_alias=AliasChoices("idempotency_key", "idempotencyKey")
    )
    prev_draft_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("prev_draft_id", "prevDraftId"),
        description="Existing draft to replace (sticky update)",
    )


class DraftOrderResult(BaseModel):
    """Created or updated draft order."""

    model_config = ConfigDict(populate_by_name=True)

    draft_id: str = Field(..., alias="draftId")
    invoice_url: str = Field(..., alias="invoiceUrl")

    def to_record(self) -> dict:
        """Serialize for the idempotency store."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_record(cls, record: dict) -> "DraftOrderResult":
        return cls.model_validate(record)


def normalize_item_ref(raw: Union[str, int, None]) -> str:
    """Expand a bare variant ID to its global ID form."""
    ref = "" if raw is None else str(raw).strip()
    if not ref:
        raise OrderValidationError("Line item is missing a variant ID")
    if ref.startswith("gid://"):
        return ref
    return f"{VARIANT_GID_PREFIX}{ref}"


def _parse_quantity(raw: Any) -> int:
    if isinstance(raw, bool):
        return 1
    try:
        quantity = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, quantity)


def _parse_cents(raw: Any) -> Optional[Decimal]:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    try:
        if not math.isfinite(raw):
            return None
    except OverflowError:
        return None
    return Decimal(str(raw))


def _parse_text(raw: Any) -> Optional[str]:
    """Stringify a present value; falsy values count as absent."""
    return str(raw) if raw else None


def _parse_properties(raw: Any) -> list[tuple[str, str]]:
    if not isinstance(raw, list):
        return []
    properties = []
    for prop in raw:
        if not isinstance(prop, dict) or not prop.get("key"):
            continue
        value = prop.get("value")
        properties.append((str(prop["key"]), "" if value is None else str(value)))
    return properties


@dataclass(frozen=True)
class NormalizedLine:
    """A request line with defaults applied and the variant ID in GID form."""

    item_ref: str
    quantity: int = 1
    grade: str = "A"
    corded: bool = False
    label: str = ""
    properties: list[tuple[str, str]] = field(default_factory=list)
    unit_price_cents: Optional[Decimal] = None

    @classmethod
    def from_request(cls, line: OrderLineRequest) -> "NormalizedLine":
        return cls(
            item_ref=normalize_item_ref(line.item_ref),
            quantity=_parse_quantity(line.quantity),
            grade=normalize_grade(_parse_text(line.grade)),
            corded=bool(line.corded),
            label=_parse_text(line.label) or "",
            properties=_parse_properties(line.properties),
            unit_price_cents=_parse_cents(line.unit_price_cents),
        )
