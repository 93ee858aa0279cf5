"""In-memory rate limiting applied by the request layer.

`InMemoryRateLimiter` keeps a sliding window of hit timestamps per key.
`RateLimit` wraps a limiter as a FastAPI dependency so routes opt in
with `Depends(...)`; the services never see it.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request

from ..errors import RateLimited


class InMemoryRateLimiter:
    """Simple per-key window limiter shared by every request of the process."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._hits: dict[str, deque] = defaultdict(deque)
        self._lock = threading.Lock()
        self._clock = clock

    def allow(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        """Record a hit for `key`; return `(allowed, retry_after_seconds)`."""
        now = self._clock()
        with self._lock:
            q = self._hits[key]
            cutoff = now - window_seconds
            while q and q[0] <= cutoff:
                q.popleft()
            if len(q) >= max_requests:
                return False, max(1, int(window_seconds - (now - q[0])))
            q.append(now)
        return True, 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


class RateLimit:
    """FastAPI dependency throttling one route per client address."""

    def __init__(self, limiter: InMemoryRateLimiter, max_requests: int, window_seconds: int):
        self.limiter = limiter
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        allowed, retry_after = self.limiter.allow(
            f"{client}:{request.url.path}", self.max_requests, self.window_seconds
        )
        if not allowed:
            raise RateLimited(retry_after)
