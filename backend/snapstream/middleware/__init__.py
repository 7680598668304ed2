# Middleware package init
"""
Snapstream Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [Rate Limit] → [GZip] → [CORS] → Route

    1. Request ID first: even a rate-limited response carries X-Request-ID
    2. Logging: records rejected (429) requests as well as served ones
    3. Rate Limit: rejects abuse before any route or database work
    4. GZip / CORS: applied by Starlette's built-in middleware

    Responses pass back through the chain in reverse.
"""
