"""
Snapstream Backend — Shared Response Schemas
==============================================

What:  Response models used across route groups: the error envelope, the
       health report, a bare message acknowledgement, and pagination metadata.
Why:   Clients parse every error the same way regardless of which route
       produced it.
"""

from typing import Optional

from pydantic import BaseModel, Field

# Upper bound for 1-based page parameters; keeps OFFSET inside the database integer range
MAX_PAGE = 10_000


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.
    Why:   Clients need a consistent structure to parse errors programmatically.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "forbidden",
            "message": "This account is private",
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. {"message": "Post deleted successfully"}."""
    message: str = Field(description="Human-readable result")


class PageMeta(BaseModel):
    """
    Offset pagination state shared by the feed and chat history.

    has_more is computed from total_count, so clients can stop requesting
    pages without an extra empty round-trip.
    """
    page: int = Field(description="1-based page number")
    limit: int = Field(description="Items per page")
    total_count: int = Field(description="Total items matching the query")
    has_more: bool = Field(description="Whether a further page exists")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Image storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
