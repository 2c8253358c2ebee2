"""Draft order API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from draftorders.errors import (
    DraftOrderError,
    IdempotencyConflictError,
    MissingReferenceError,
    OrderValidationError,
)
from draftorders.observability import RequestSampler
from draftorders.orders.models import DraftOrderRequest, DraftOrderResult
from draftorders.orders.service import DraftOrderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Draft Orders"])


def get_draft_order_service(request: Request) -> DraftOrderService:
    """Dependency to get the draft order service built at startup."""
    return request.app.state.draft_order_service


def get_request_sampler(request: Request) -> RequestSampler:
    """Dependency to get the request sampler built at startup."""
    return request.app.state.request_sampler


def error_status(exc: DraftOrderError) -> int:
    """HTTP status reported for a pipeline failure."""
    if isinstance(exc, (OrderValidationError, MissingReferenceError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, IdempotencyConflictError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_502_BAD_GATEWAY


@router.post("/create-draft-order", response_model=DraftOrderResult)
async def create_draft_order(
    data: DraftOrderRequest,
    request: Request,
    service: DraftOrderService = Depends(get_draft_order_service),
    sampler: RequestSampler = Depends(get_request_sampler),
):
    """
    Create a draft order, or replace the lines of `prevDraftId` when given.

    Example:
    ```json
    {
      "items": [
        {"variantId": "123", "quantity": 2, "grade": "B", "cording": true}
      ],
      "idempotencyKey": "k1"
    }
    ```

    Returns `{"draftId": ..., "invoiceUrl": ...}`. Replaying an `idempotencyKey`
    returns the stored draft without another write.
    """
    sampler.observe(data, origin=request.headers.get("origin"))
    try:
        return await service.create_or_update_draft_order(data)
    except DraftOrderError as e:
        logger.error(f"create-draft-order error: {e}", extra={"error_type": type(e).__name__})
        raise HTTPException(status_code=error_status(e), detail=str(e))
