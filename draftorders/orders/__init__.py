# Orders module
from draftorders.orders.models import DraftOrderRequest, DraftOrderResult, OrderLineRequest
from draftorders.orders.service import DraftOrderService

__all__ = ["DraftOrderRequest", "DraftOrderResult", "DraftOrderService", "OrderLineRequest"]
