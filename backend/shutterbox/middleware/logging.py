"""
Shutterbox Backend — Request Logging Middleware
=================================================

What:  One access-log line per HTTP request on the `shutterbox.access` logger.
How:   Measures time around call_next; picks the level from the status code.
Who:   Applied to every request except /health.

What we log vs what we DON'T log:
    ✅ method, path, status, duration, client IP, request ID, caller id
    ❌ request bodies (passwords), Authorization headers (tokens), file bytes
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shutterbox.middleware.request_id import request_id_var

logger = logging.getLogger("shutterbox.access")

SKIPPED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Level by status:
        5xx → ERROR, 4xx → WARNING, everything else → INFO

    The caller id comes from request.state.identity, which the access guard
    sets on admitted requests. Anonymous and denied requests log "-".
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        identity = getattr(request.state, "identity", None)
        user_id = identity.id if identity is not None else "-"
        rid = request_id_var.get("")

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s user=%s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            client_ip,
            user_id,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "user_id": user_id,
            },
        )
        return response
