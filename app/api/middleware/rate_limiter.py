"""
Rate Limiting Middleware
HealthMate API

Sliding window limiter for sensitive operations (login, registration,
uploads, account deletion). State is process-local and resets on restart;
the API is deployed as a single instance.
"""

import time
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.security import decode_token

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Per-identity timestamps of recent hits."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, identity: str, now: Optional[float] = None) -> Tuple[bool, int, int]:
        """
        Record a hit. Returns (allowed, remaining, retry_after_seconds).
        A rejected hit is not recorded.
        """
        now = time.time() if now is None else now
        window = self._windows[identity]

        # Remove timestamps outside the window
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

        if len(window) >= self.max_requests:
            retry_after = max(1, int(window[0] + self.window_seconds - now + 1))
            return False, 0, retry_after

        window.append(now)
        return True, self.max_requests - len(window), 0

    def reset(self) -> None:
        self._windows.clear()


# Shared by every RateLimitMiddleware instance in this process
limiter = SlidingWindowLimiter(settings.rate_limit_requests, settings.rate_limit_window)


def _client_ip(request: Request) -> str:
    """Extract client IP, respecting proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def request_identity(request: Request) -> str:
    """The authenticated user when the bearer token is valid, else the client IP."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return f"user:{decode_token(auth[7:].strip())['sub']}"
        except AuthenticationError:
            pass
    return f"ip:{_client_ip(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies ``limiter`` to the configured path prefixes only."""

    def __init__(self, app, store: Optional[SlidingWindowLimiter] = None):
        super().__init__(app)
        self.store = store or limiter
        self.paths = tuple(settings.rate_limited_paths_list)
        logger.info(
            "Rate limiter: %d req/%ds per identity on %s",
            self.store.max_requests, self.store.window_seconds, ", ".join(self.paths),
        )

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not request.url.path.startswith(self.paths):
            return await call_next(request)

        identity = request_identity(request)
        allowed, remaining, retry_after = self.store.hit(identity)

        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", identity, request.url.path)
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests, please try again later.",
                    "retryAfter": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.store.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Window"] = str(self.store.window_seconds)
        return response
