"""
NoteTag Backend — Request Logging Middleware
==============================================

What:  One access-log line per HTTP request with status and duration.
Why:   Provider calls dominate latency (hundreds of ms to seconds); the
       duration here is the number to watch when a provider degrades.
How:   Measures from middleware entry to response, picks the log level from
       the status code, attaches structured fields via `extra`.

What we log vs what we DON'T log (privacy):
    Log: method, path, status, duration, client IP, request ID
    Don't log: request bodies (note text may contain personal data)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notetag.middleware.request_id import request_id_var

logger = logging.getLogger("notetag.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration for each request.

    Typical durations:
        - GET /health: 1-5ms (no provider calls)
        - POST /api/ai/suggest-tags: 300-3000ms (provider call dominates)
        - POST /api/ai/compare: slowest provider's latency (calls run concurrently)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path

        # Health checks are polled constantly
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("") or getattr(request.state, "request_id", "")

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
