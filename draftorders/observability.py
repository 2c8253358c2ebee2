"""Sampled logging of inbound draft order requests."""

import logging
import time
from typing import Callable, Optional

from draftorders.orders.models import DraftOrderRequest

logger = logging.getLogger(__name__)


class RequestSampler:
    """Logs a safe summary of at most one request per interval.

    Only catalog-facing fields are logged (variant, quantity, grade, cording,
    label). Client prices, notes and headers are left out.
    """

    def __init__(self, interval_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_logged: Optional[float] = None

    def should_log(self) -> bool:
        if self.interval_seconds <= 0:
            return False
        now = self._clock()
        if self._last_logged is not None and now - self._last_logged < self.interval_seconds:
            return False
        self._last_logged = now
        return True

    def summarize(self, request: DraftOrderRequest) -> dict:
        return {
            "count": len(request.items),
            "items": [
                {
                    "i": i,
                    "item_ref": str(item.item_ref),
                    "quantity": item.quantity,
                    "grade": item.grade,
                    "corded": item.corded,
                    "label": item.label,
                }
                for i, item in enumerate(request.items)
            ],
        }

    def observe(self, request: DraftOrderRequest, origin: Optional[str] = None) -> None:
        """Log the request summary if the interval has elapsed."""
        if not self.should_log():
            return
        logger.info(f"[sample] origin={origin} {self.summarize(request)}")
