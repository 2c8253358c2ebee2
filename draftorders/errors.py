"""Exceptions raised by the draft order pipeline."""

from typing import Optional


class DraftOrderError(Exception):
    """Base class for every failure surfaced to the caller."""


class OrderValidationError(DraftOrderError):
    """Raised when the request is unusable (empty line list, bad item reference)."""


class UpstreamError(DraftOrderError):
    """Raised when the commerce platform call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamTransientError(UpstreamError):
    """Rate limiting, 5xx or a transient transport failure. Retried by the client."""


class UpstreamRejectionError(UpstreamError):
    """Non-retryable upstream failure: 4xx status, GraphQL errors or userErrors."""


class MissingReferenceError(DraftOrderError):
    """Raised when a batched lookup does not return one of the requested items."""

    def __init__(self, item_ref: str):
        self.item_ref = item_ref
        super().__init__(f"Variant not found: {item_ref}")


class IncompleteResultError(DraftOrderError):
    """Raised when a draft create/update succeeds without an invoice URL."""


class IdempotencyConflictError(DraftOrderError):
    """Raised when another request holds the same idempotency key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Request with idempotency key '{key}' is already in progress")
