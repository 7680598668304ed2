"""
Snapstream Backend — Request ID Middleware
============================================

What:  Assigns each incoming request an ID and returns it in X-Request-ID.
Why:   Every log line and every error body of one request carries the same ID,
       so a user-reported error can be matched to its server-side log.
How:   Accepts a client-supplied X-Request-ID or generates one, stores it in a
       ContextVar for loggers and exception handlers, and echoes it back.
When:  Outermost middleware, so even rate-limited responses carry the ID.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied IDs longer than this are replaced
MAX_REQUEST_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header if present and sane
        2. Otherwise generate a short UUID prefix
        3. Store in ContextVar and request.state
        4. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip()
        if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
            # 8 chars is enough for correlation and readable in logs
            rid = str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
