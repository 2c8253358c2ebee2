"""Shopify Admin GraphQL client with retry for transient failures."""

import asyncio
import logging
import random
import re
from typing import Any, Optional

import httpx

from draftorders.errors import UpstreamRejectionError, UpstreamTransientError

logger = logging.getLogger(__name__)

# Transport failures whose message looks like throttling or a server error
TRANSIENT_MESSAGE = re.compile(r"rate|429|5\d\d", re.IGNORECASE)
MAX_JITTER_SECONDS = 0.1


def is_transient_transport_error(exc: httpx.TransportError) -> bool:
    """Timeouts and network errors are transient, as is anything that reads like one."""
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    return bool(TRANSIENT_MESSAGE.search(str(exc)))


class UpstreamClient:
    """Client for the commerce platform's GraphQL endpoint."""

    def __init__(
        self,
        api_url: str,
        access_token: str,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_base_seconds: float = 0.25,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_url: Full GraphQL endpoint URL
            access_token: Admin API access token
            timeout: Request timeout in seconds
            max_attempts: Total attempts per call, including the first
            backoff_base_seconds: Delay before the first retry; doubles per attempt
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.api_url = api_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=5.0),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            headers={
                "X-Shopify-Access-Token": access_token,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        await self.close()

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base_seconds * (2 ** attempt) + random.uniform(0, MAX_JITTER_SECONDS)

    async def _post_once(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send one request and translate the outcome into data or an UpstreamError."""
        try:
            response = await self.client.post(self.api_url, json=payload)
        except httpx.TransportError as e:
            if is_transient_transport_error(e):
                raise UpstreamTransientError(f"Transport error: {e}") from e
            raise UpstreamRejectionError(f"Transport error: {e}") from e

        if response.status_code == 429:
            raise UpstreamTransientError("429 rate limited", status_code=429)
        if response.status_code >= 500:
            raise UpstreamTransientError(
                f"{response.status_code} {response.reason_phrase}", status_code=response.status_code
            )
        if not response.is_success:
            raise UpstreamRejectionError(
                f"{response.status_code} {response.reason_phrase}", status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamRejectionError(
                f"Invalid JSON from upstream: {e}", status_code=response.status_code
            ) from e
        errors = body.get("errors")
        if errors:
            first = errors[0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise UpstreamRejectionError(message or "Upstream returned errors", status_code=response.status_code)
        return body.get("data") or {}

    async def call(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Execute a query or mutation, retrying transient failures.

        Args:
            query: GraphQL document
            variables: GraphQL variables

        Returns:
            The response's data payload

        Raises:
            UpstreamTransientError: If every attempt failed transiently
            UpstreamRejectionError: On the first non-retryable failure
        """
        payload = {"query": query, "variables": variables or {}}
        for attempt in range(self.max_attempts):
            try:
                return await self._post_once(payload)
            except UpstreamTransientError as e:
                if attempt < self.max_attempts - 1:
                    backoff = self._backoff(attempt)
                    logger.debug(
                        f"Upstream call failed (attempt {attempt + 1}/{self.max_attempts}), "
                        f"retrying in {backoff:.3f}s: {e}"
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(f"Upstream call failed after {self.max_attempts} attempts: {e}")
                raise

        # Only reached when max_attempts < 1
        raise UpstreamTransientError("No upstream attempts were made")
