"""
Snapstream Backend — Middleware, Error Envelope & Health Tests
================================================================

Test Strategy:
    ✅ X-Request-ID: generated when absent, echoed when supplied, and present
       in error bodies
    ✅ Rate limiting: auth bucket returns 429 with Retry-After once exhausted;
       other routes keep working; /health is never limited
    ✅ Unknown routes use the standard error envelope
    ✅ /health reports database and storage status
"""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from snapstream.config import settings
from snapstream.main import app


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated(self, test_client):
        response = await test_client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_value_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-abc"})
        assert response.headers["X-Request-ID"] == "trace-abc"

    @pytest.mark.asyncio
    async def test_oversized_value_replaced(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "x" * 65})
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get("/api/feed", headers={"X-Request-ID": "trace-401"})

        assert response.status_code == 401
        assert response.json()["request_id"] == "trace-401"


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert "message" in body
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_malformed_json(self, test_client):
        response = await test_client.post(
            "/api/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_auth_bucket_exhausted(self, database):
        # Own client address so counts from other tests do not interfere
        transport = ASGITransport(app=app, client=("203.0.113.7", 4000))
        body = {"email": "nobody@snapstream.io", "password": "Secret123"}

        with patch.object(settings, "rate_limit_enabled", True), \
             patch.object(settings, "auth_rate_limit_requests", 2):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                first = await client.post("/api/auth/login", json=body)
                second = await client.post("/api/auth/login", json=body)
                third = await client.post("/api/auth/login", json=body)
                health = await client.get("/health")
                explore = await client.get("/api/explore/trending")

        assert first.status_code == 401
        assert second.status_code == 401
        assert third.status_code == 429
        assert int(third.headers["Retry-After"]) > 0
        assert third.json()["error"] == "rate_limit_exceeded"
        assert third.json()["details"]["retry_after"] == int(third.headers["Retry-After"])
        assert "X-Request-ID" in third.headers
        assert health.status_code == 200
        assert explore.status_code == 200

    @pytest.mark.asyncio
    async def test_disabled(self, test_client):
        body = {"email": "nobody@snapstream.io", "password": "Secret123"}
        with patch.object(settings, "auth_rate_limit_requests", 1):
            for _ in range(3):
                response = await test_client.post("/api/auth/login", json=body)
                assert response.status_code == 401


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"
        assert body["version"] == "1.0.0"
        assert body["uptime_seconds"] >= 0
