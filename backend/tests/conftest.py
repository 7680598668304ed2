"""
Snapstream Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (database, API client, users,
       image bytes).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.
When:  Every fixture is function-scoped: each test gets empty tables.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── database: Creates all tables in a throwaway SQLite file, drops them after
    ├── db_session: AsyncSession for service-level tests
    ├── test_client: HTTPX AsyncClient wired to the FastAPI app
    ├── alice / bob / carol: Registered users with bearer headers
    ├── png_bytes / jpeg_bytes: Real images generated with Pillow
    └── create_post: Uploads a post through the API and returns its JSON
"""

import io
import os
import tempfile
from typing import Any, AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any snapstream imports
# Why: settings and the engine are built at import time
_TEST_DIR = tempfile.mkdtemp(prefix="snapstream_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256-signing"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

from snapstream.database import Base, async_session_factory, engine  # noqa: E402
import snapstream.models  # noqa: E402,F401

PASSWORD = "Secret123"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """
    Creates every table before the test and drops them afterwards.

    Why not the lifespan handler: ASGITransport does not send lifespan
    events, so startup (and AUTO_CREATE_TABLES) never runs in tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(database):
    """A session for calling services directly; committed by the test if needed."""
    async with async_session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client & Users
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to our FastAPI app.
    How:     Uses ASGITransport to route requests directly to the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from snapstream.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register_and_login(client: AsyncClient, username: str) -> Dict[str, Any]:
    """
    Register `username` through the API and log in.

    Returns:
        {"id", "username", "email", "token", "headers"}
    """
    email = f"{username.lower()}@snapstream.io"
    response = await client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": PASSWORD},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    return {
        "id": body["user_id"],
        "username": body["username"],
        "email": email,
        "token": body["token"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest_asyncio.fixture
async def alice(test_client) -> Dict[str, Any]:
    return await register_and_login(test_client, "alice")


@pytest_asyncio.fixture
async def bob(test_client) -> Dict[str, Any]:
    return await register_and_login(test_client, "bob")


@pytest_asyncio.fixture
async def carol(test_client) -> Dict[str, Any]:
    return await register_and_login(test_client, "carol")


# ══════════════════════════════════════════════════════════════════════════
# Images & Posts
# ══════════════════════════════════════════════════════════════════════════

def make_image(image_format: str = "PNG", size=(8, 8), color="red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny but real PNG; Pillow must be able to decode uploads."""
    return make_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image("JPEG", color="blue")


@pytest.fixture
def temp_storage(tmp_path):
    """
    Provides a temporary directory for file storage tests.

    Uses pytest's tmp_path fixture (automatically cleaned up).
    """
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def create_post(test_client, png_bytes) -> Callable:
    """
    Returns an async helper that uploads a post for a user.

    Usage:
        post = await create_post(alice, caption="Sunset", is_private=True)
    """

    async def _create(
        user: Dict[str, Any],
        caption: str = "",
        is_private: bool = False,
        tags: str = "",
        content: bytes = None,
        filename: str = "photo.png",
    ) -> Dict[str, Any]:
        response = await test_client.post(
            "/api/upload",
            headers=user["headers"],
            files={"image": (filename, content or png_bytes, "image/png")},
            data={
                "caption": caption,
                "is_private": "true" if is_private else "false",
                "tags": tags,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["post"]

    return _create
