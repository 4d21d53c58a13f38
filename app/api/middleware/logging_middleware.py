"""
Logging Middleware
HealthMate API

One log line per request: method, path, status, duration, client, request ID.
"""

import time
import uuid
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import RequestLogger

logger = logging.getLogger(__name__)
request_logger = RequestLogger(logger)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID (caller-supplied X-Request-ID wins)."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        client = request.client.host if request.client else "unknown"
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] %s %s → ERROR (%.1fms) client=%s: %s",
                request_id, request.method, request.url.path,
                (time.monotonic() - start) * 1000, client, exc,
            )
            raise

        request_logger.log_request(
            request_id, request.method, request.url.path,
            response.status_code, (time.monotonic() - start) * 1000, client,
        )
        response.headers["X-Request-ID"] = request_id
        return response
