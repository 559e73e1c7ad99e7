from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

from loguru import logger

from sbos_assistant.errors import RateLimitExceededError


class SlidingWindowRateLimiter:
    """Admits at most ``max_requests`` per identity in any ``window_seconds`` interval."""

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def try_acquire(self, identity: str) -> float:
        """Record a hit and return 0, or return the seconds until the next slot frees up."""
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(identity, deque())
            while hits and now - hits[0] >= self._window:
                hits.popleft()
            if len(hits) >= self._max_requests:
                return self._window - (now - hits[0])
            hits.append(now)
            return 0.0

    def check(self, identity: str) -> None:
        retry_after = self.try_acquire(identity)
        if retry_after > 0:
            logger.warning(f"Rate limit hit for {identity}; retry in {retry_after:.1f}s")
            raise RateLimitExceededError(identity, retry_after)

    def reset(self, identity: str | None = None) -> None:
        with self._lock:
            if identity is None:
                self._hits.clear()
            else:
                self._hits.pop(identity, None)
