"""
DevCamper Backend — Access Log Middleware
===========================================

What:  One log line per request on the `devcamper.access` logger.

Line format:
    GET /api/v1/bootcamps?page=2&limit=10 200 12.4ms [a1b2c3d4]

Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
/health probes are not logged. Request bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from devcamper.middleware.request_id import request_id_var

logger = logging.getLogger("devcamper.access")

SKIPPED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path with query string, status, duration and request id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        query = request.url.query
        target = f"{path}?{query}" if query else path
        status = response.status_code
        rid = request_id_var.get("")

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s]",
            request.method,
            target,
            status,
            duration_ms,
            rid,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "query": query,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
