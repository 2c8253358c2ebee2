# Routes module
from draftorders.routes.draft_orders import router as draft_orders_router

__all__ = ["draft_orders_router"]
