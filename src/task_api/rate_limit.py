from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Depends

from .errors import RateLimitExceeded
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class RateLimiter(ABC):
    """Request guard consulted before a request reaches the task core."""

    @abstractmethod
    def check(self, key: str) -> None:
        """Record one request for `key`; raise RateLimitExceeded when over the limit."""


class NoopRateLimiter(RateLimiter):
    def check(self, key: str) -> None:
        return None


class FixedWindowRateLimiter(RateLimiter):
    """
    In-process fixed-window counter. Expired windows are swept at most once per
    window length, so memory tracks the callers seen in the last window only.

    Args:
        max_requests: requests allowed per key per window
        window_seconds: window length
        message: error message returned when the limit is hit
        clock: monotonic time source, injectable for tests
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        message: str = "Too many requests, please try again later",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._lock = Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep: Optional[float] = None

    def check(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                retry_after = max(1, int(started + self.window_seconds - now))
                logger.info("Rate limit hit key=%s retry_after=%ds", key, retry_after)
                raise RateLimitExceeded(self.message, retry_after=retry_after)
            self._windows[key] = (started, count + 1)

    def _prune(self, now: float) -> None:
        """Drop windows that have expired. Caller holds the lock."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for k in expired:
            del self._windows[k]


# PUBLIC_INTERFACE
def build_rate_limiters(settings: Optional[Settings] = None) -> Dict[str, RateLimiter]:
    """
    Build the two guards the API uses:
    - api: every task route
    - ai: the summarize route, on top of the api guard
    """
    settings = settings or get_settings()
    if not settings.rate_limit_enabled:
        return {"api": NoopRateLimiter(), "ai": NoopRateLimiter()}
    return {
        "api": FixedWindowRateLimiter(
            settings.rate_limit_api_max,
            settings.rate_limit_api_window_seconds,
            "Too many requests, please try again later",
        ),
        "ai": FixedWindowRateLimiter(
            settings.rate_limit_ai_max,
            settings.rate_limit_ai_window_seconds,
            "Too many AI requests, please try again later",
        ),
    }


# PUBLIC_INTERFACE
def get_rate_limit_dependency(limiter: RateLimiter, scope: str, owner_dep: Callable[..., Any]):
    """
    Return a FastAPI dependency that applies `limiter` per (scope, owner).

    The key is the owner id resolved by `owner_dep`, so a caller cannot pick a
    fresh bucket by changing an unauthenticated header. FastAPI caches the owner
    dependency per request, so it still runs once.
    """

    async def _guard(owner_id: str = Depends(owner_dep)) -> None:
        limiter.check(f"{scope}:{owner_id}")

    return _guard
