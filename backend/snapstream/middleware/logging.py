"""
Snapstream Backend — Request Logging Middleware
=================================================

What:  One access log line per HTTP request.
How:   Measures duration around the downstream call and logs method, path,
       status, duration, request ID, client IP and, when the route resolved a
       token, the username.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, IP, request ID, username
    ❌ Don't log: request bodies (passwords, images), Authorization headers,
       query strings (search terms)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snapstream.middleware.request_id import request_id_var

logger = logging.getLogger("snapstream.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log level follows the status class:
        5xx → ERROR, 4xx → WARNING, everything else → INFO

    The username is read from request.state after the route ran; the auth
    dependencies put it there. Anonymous requests log "-".
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Health checks run every few seconds; logging them clutters the log
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        username = getattr(request.state, "username", None) or "-"

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            username,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "username": username,
            },
        )

        return response
