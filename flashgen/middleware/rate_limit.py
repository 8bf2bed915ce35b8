"""
Rate limiting: a per-client sliding window for generation requests, and
slowapi for the general API limit on the saved-set endpoints
"""
import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse
import structlog

from flashgen import config

logger = structlog.get_logger()

UNKNOWN_CLIENT = "unknown"


def get_client_identifier(request: Request) -> str:
    """First address of X-Forwarded-For, or "unknown". Trivially spoofable."""
    forwarded_for = request.headers.get("x-forwarded-for", "")
    first = forwarded_for.split(",", 1)[0].strip()
    return first or UNKNOWN_CLIENT


class SlidingWindowRateLimiter:
    """At most ``max_requests`` admitted per client in any ``window_seconds`` span."""

    def __init__(self, max_requests: int = 5, window_seconds: float = 60.0, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._log: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def admit(self, client_id: str, now: Optional[float] = None) -> bool:
        """Record ``now`` for ``client_id`` and return True, or return False if over the limit."""
        if now is None:
            now = self._clock()
        window_start = now - self.window_seconds

        with self._lock:
            timestamps = self._log.setdefault(client_id, deque())
            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                return False

            timestamps.append(now)
            return True

    def is_throttled(self, client_id: str, now: Optional[float] = None) -> bool:
        """True if ``admit`` would reject right now. Records nothing."""
        if now is None:
            now = self._clock()
        window_start = now - self.window_seconds
        with self._lock:
            timestamps = self._log.get(client_id)
            if not timestamps:
                return False
            return sum(1 for t in timestamps if t > window_start) >= self.max_requests

    def prune(self, now: Optional[float] = None) -> int:
        """Forget clients with no request inside the window. Returns how many were dropped."""
        if now is None:
            now = self._clock()
        window_start = now - self.window_seconds
        with self._lock:
            stale = [cid for cid, ts in self._log.items() if not ts or ts[-1] <= window_start]
            for cid in stale:
                del self._log[cid]
        return len(stale)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._log)

    def reset(self) -> None:
        with self._lock:
            self._log.clear()


# Process-wide instance, lives until restart
generation_limiter = SlidingWindowRateLimiter(
    max_requests=config.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
)


def get_rate_limiter() -> SlidingWindowRateLimiter:
    return generation_limiter


# slowapi limiter for everything other than generation
limiter = Limiter(key_func=get_client_identifier)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit exceeded handler"""
    logger.warning("general_rate_limit_rejected", client_id=get_client_identifier(request), limit=exc.detail)
    return JSONResponse(
        status_code=429,
        content={"error": f"Rate limit exceeded: {exc.detail}. Please try again later."},
    )


def general_api_limit():
    """Rate limit for general API endpoints"""
    return limiter.limit(config.GENERAL_API_LIMIT)
