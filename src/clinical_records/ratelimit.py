from __future__ import annotations

import logging
import math
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request, status

from src.clinical_records.config import settings
from src.clinical_records.services.audit.service import client_address

logger = logging.getLogger(__name__)


class RateLimiter:
    """In-process fixed-window rate limiter, keyed by client address.

    Usable directly as a FastAPI dependency. Counters live in memory, so each
    worker process enforces its own ceiling.
    """

    def __init__(
        self,
        *,
        scope: str,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # client id -> (window start, requests seen in window)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_prune = clock()

    def hit(self, client_id: str) -> Tuple[bool, int]:
        """Count one request. Returns ``(allowed, retry_after_seconds)``."""

        now = self._clock()
        self._prune_expired(now)
        start, seen = self._windows.get(client_id, (now, 0))
        if now - start >= self.window_seconds:
            start, seen = now, 0

        if seen >= self.max_requests:
            retry_after = max(1, math.ceil(self.window_seconds - (now - start)))
            return False, retry_after

        self._windows[client_id] = (start, seen + 1)
        return True, 0

    def _prune_expired(self, now: float) -> None:
        # At most once per window, drop clients whose window has already ended.
        if now - self._last_prune < self.window_seconds:
            return
        self._windows = {
            client_id: window
            for client_id, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_prune = now

    def tracked_clients(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()

    async def __call__(self, request: Request) -> None:
        client_id = client_address(request) or "unknown"
        allowed, retry_after = self.hit(client_id)
        if allowed:
            return
        logger.warning("Rate limit %r exceeded by %s", self.scope, client_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": str(retry_after)},
        )


api_rate_limiter = RateLimiter(
    scope="api",
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)
auth_rate_limiter = RateLimiter(
    scope="auth",
    max_requests=settings.auth_rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)
