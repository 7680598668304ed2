"""
Snapstream Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window rate limiter with a separate, tighter budget for
       the auth endpoints.
Why:   Login and register are the brute-force and account-spam targets; the
       rest of the API gets a generous general budget.
How:   Tracks request timestamps per (bucket, IP) in memory.

Buckets:
    auth     /api/auth/*      AUTH_RATE_LIMIT_REQUESTS per AUTH_RATE_LIMIT_WINDOW
    general  everything else  RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW

Algorithm: Sliding Window Log
    1. Each (bucket, IP) key has a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and let it through

Deployment note:
    State is per process. Behind several workers each one enforces its own
    budget; a shared store would be needed for a global limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from snapstream.config import settings
from snapstream.exceptions import RateLimitExceededError
from snapstream.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

AUTH_PATH_PREFIX = "/api/auth/"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Excluded paths:
        /health and the API docs are never limited.

    Response on rate limit:
        HTTP 429 with Retry-After and the standard error body. Built here
        rather than raised, because exceptions raised in middleware do not
        reach the application's exception handlers.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    def _limits_for(self, path: str) -> Tuple[str, int, int]:
        if path.startswith(AUTH_PATH_PREFIX):
            return "auth", settings.auth_rate_limit_requests, settings.auth_rate_limit_window
        return "general", settings.rate_limit_requests, settings.rate_limit_window

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not settings.rate_limit_enabled or path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's IP unless uvicorn runs with
        # --proxy-headers
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        bucket, limit, window = self._limits_for(path)
        key = (bucket, client_ip)

        now = time.time()
        window_start = now - window
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(timestamps[0] + window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s (%s bucket): %d requests in %ds window",
                client_ip, bucket, len(timestamps), window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        # Drop idle keys every 1000 requests so the table does not grow with
        # every IP ever seen
        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive(now)

        return await call_next(request)

    def _cleanup_inactive(self, now: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < now - self._window_for(key[0])
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))

    def _window_for(self, bucket: str) -> int:
        return settings.auth_rate_limit_window if bucket == "auth" else settings.rate_limit_window
