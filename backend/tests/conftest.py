"""
Shutterbox Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment is set before any shutterbox import so the module-level
       singletons (settings, token_service, upload_provider) are built with
       test values: a throwaway JWT key, cheap bcrypt rounds and the local
       filesystem provider in a temp directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── make_result: Builds mock `Result` objects for session.execute
    ├── temp_storage: Temporary directory for the local provider
    ├── sample_image_bytes: A real 64x48 PNG rendered with Pillow
    ├── sample_jpeg_bytes: The same, as a JPEG
    ├── user_token / admin_token: Tokens minted by the app's TokenService
    ├── fake_provider: UploadProvider double with recorded calls
    └── test_client: HTTPX AsyncClient with DB + provider overridden
"""

import io
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any shutterbox import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_PROVIDER"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="shutterbox_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "1000"
os.environ["UPLOAD_RATE_LIMIT_REQUESTS"] = "1000"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        mock_db_session.execute = AsyncMock(return_value=make_result(one=user))
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_result():
    """
    Factory for mock SQLAlchemy results.

    one:    value of scalar_one_or_none() and scalars().first()
    scalar: value of scalar() (counts)
    rows:   value of scalars().all()
    """

    def _make(one=None, scalar=None, rows=None):
        result = MagicMock()
        result.scalar_one_or_none.return_value = one
        result.scalar.return_value = scalar
        result.scalars.return_value.first.return_value = one
        result.scalars.return_value.all.return_value = rows or []
        return result

    return _make


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """A small but real PNG, so Pillow can read its dimensions."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_jpeg_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(40, 120, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def user_id():
    return str(uuid4())


@pytest.fixture
def user_token(user_id):
    from shutterbox.services.token_service import token_service
    return token_service.issue(user_id, "user", email="alice@example.com", username="alice")


@pytest.fixture
def admin_token():
    from shutterbox.services.token_service import token_service
    return token_service.issue(uuid4(), "admin", email="admin@example.com", username="admin")


@pytest.fixture
def fake_provider():
    """
    UploadProvider double. store() and delete() are AsyncMocks so tests can
    assert on calls; the real base-class contract is tested separately.
    """
    from shutterbox.services.upload import UploadResult

    provider = MagicMock()
    provider.tag = "fake"
    provider.store = AsyncMock(return_value=UploadResult(
        url="https://cdn.example.com/photography/abc.jpg",
        thumbnail_url="https://cdn.example.com/photography/abc.jpg?thumb",
        storage_id="photography/abc",
        provider="fake",
        width=64,
        height=48,
        format="png",
        size_kb=1.5,
    ))
    provider.delete = AsyncMock(return_value=True)
    provider.health_check = AsyncMock(return_value=True)
    return provider


@pytest_asyncio.fixture
async def test_client(mock_db_session, fake_provider):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    The DB session and upload provider are swapped for the mocks above;
    overrides are cleared afterwards so tests stay independent.
    """
    from shutterbox.database import get_db_session
    from shutterbox.main import app
    from shutterbox.services.upload import get_upload_provider

    async def _session():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_upload_provider] = lambda: fake_provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
