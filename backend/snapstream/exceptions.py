"""
Snapstream Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every error the API can return.
Why:   Services raise typed errors; a single handler in main.py turns them into
       JSON responses. Routes never build error responses themselves.
How:   Each class carries its HTTP status and a machine-readable error code,
       plus a user-facing message and an optional context dict.

Exception Hierarchy:
    SnapstreamError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

Every response body has the same shape:
    {"error": "<code>", "message": "...", "details": {...}, "request_id": "..."}
"""

from typing import Any, Dict, Optional


class SnapstreamError(Exception):
    """
    Base exception for all Snapstream application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info. Returned as `details` only when
                  `expose_context` is True; otherwise logged server-side.
    """

    status_code: int = 500
    error_code: str = "server_error"
    expose_context: bool = False

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SnapstreamError):
    """
    Raised when client input fails validation.

    When:  Empty comment text, non-image upload, oversized file, duplicate
           username, wrong current password, etc.
    HTTP:  400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"
    expose_context = True

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(SnapstreamError):
    """
    Raised when a request carries no credential or an invalid one.

    When:  Missing bearer token, bad signature, expired token, bad login.
    HTTP:  401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Invalid token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(SnapstreamError):
    """
    Raised when an authenticated user acts on something they do not own or
    may not see (another user's post or comment, a private account, a
    conversation they are not part of).

    HTTP:  403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SnapstreamError):
    """
    Raised when a requested resource does not exist.

    Why a custom exception:
        SQLAlchemy returns None for missing rows. Services convert None into
        NotFoundError so the status code is decided in one place.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class RateLimitExceededError(SnapstreamError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"
    expose_context = True

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class FileStorageError(SnapstreamError):
    """
    Raised when file system operations fail.

    When:  Disk full, permission denied, directory not writable.
    HTTP:  500 Internal Server Error; paths stay in the server log.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SnapstreamError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Driver errors
        (SQL text, constraint names) are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
