"""In-memory sliding-window rate limiting dependency."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Deque

from fastapi import Request, Response

from helpdesk.core.config import settings
from helpdesk.core.exceptions import RateLimitExceeded


class SlidingWindowLimiter:
    def __init__(self) -> None:
        self._hits: dict[str, Deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int, now: float | None = None) -> tuple[bool, int, int]:
        """Record a hit; returns ``(allowed, remaining, retry_after)``."""
        if limit <= 0:
            return True, limit, 0
        now = time.time() if now is None else now
        cutoff = now - window_seconds
        with self._lock:
            window = self._hits.setdefault(key, deque())
            while window and window[0] <= cutoff:
                window.popleft()
            if len(window) >= limit:
                return False, 0, max(int(window[0] + window_seconds - now), 1)
            window.append(now)
            return True, limit - len(window), 0

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


limiter = SlidingWindowLimiter()


def _client_key(request: Request, scope: str) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client = forwarded.split(",")[0].strip()
    else:
        client = request.client.host if request.client else "unknown"
    return f"{scope}:{client}"


def scope_limit(scope: str) -> int:
    if scope == "bulk":
        return settings.RATE_LIMIT_BULK_MAX_REQUESTS
    return settings.RATE_LIMIT_MAX_REQUESTS


def rate_limit(scope: str = "default"):
    def _dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        limit = scope_limit(scope)
        window_seconds = settings.RATE_LIMIT_WINDOW_SECONDS
        ok, remaining, retry_after = limiter.hit(_client_key(request, scope), limit=limit, window_seconds=window_seconds)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        if not ok:
            raise RateLimitExceeded(retry_after=retry_after, limit=limit, window_seconds=window_seconds)

    return _dependency
