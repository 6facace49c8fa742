from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Per-address admission control over a sliding time window.

    Only admitted requests are recorded, so a rejected caller becomes eligible
    again as soon as its oldest admitted request leaves the window.
    """

    def __init__(
        self,
        *,
        window_ms: int = 1000,
        max_requests: int = 5,
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        self.window_seconds = window_ms / 1000
        self.max_requests = max_requests
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def allow(self, address: str) -> bool:
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            calls = self._requests.setdefault(address, deque())
            self._expire(calls, now)
            if len(calls) >= self.max_requests:
                logger.warning("Rate limit exceeded for %s (%d in %.3fs)", address, len(calls), self.window_seconds)
                return False
            calls.append(now)
            return True

    def prune(self) -> int:
        """Forget addresses with no requests inside the window; returns how many were dropped."""
        with self._lock:
            return self._sweep(self._clock())

    def tracked_addresses(self) -> int:
        with self._lock:
            return len(self._requests)

    def _expire(self, calls: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while calls and calls[0] <= cutoff:
            calls.popleft()

    def _sweep(self, now: float) -> int:
        stale = []
        for address, calls in self._requests.items():
            self._expire(calls, now)
            if not calls:
                stale.append(address)
        for address in stale:
            del self._requests[address]
        self._last_sweep = now
        if stale:
            logger.debug("Dropped %d idle rate-limit entries", len(stale))
        return len(stale)


__all__ = ["SlidingWindowRateLimiter"]
