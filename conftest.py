import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Tests run against an in-memory SQLite database unless told otherwise
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "local")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with test env vars
get_settings.cache_clear()

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.common.storage import get_blob_store  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.fulfillment_service import models as _fulfillment_models  # noqa: E402,F401
from services.fulfillment_service.app.main import app  # noqa: E402
from tests.stubs import InMemoryBlobStore  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single SQLite connection alive across sessions.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def staff_user() -> AuthUser:
    return AuthUser(user_id="staff-user", email="staff@example.com", role="authenticated")


@pytest.fixture
def admin_user() -> AuthUser:
    return AuthUser(
        user_id="admin-user",
        email="admin@example.com",
        role="authenticated",
        app_metadata={"role": "admin"},
    )


@pytest_asyncio.fixture
async def client(db_session, blob_store, admin_user) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with DB, blob store and auth dependencies overridden.

    The caller is an admin; tests that need a regular user override
    ``get_current_user`` again.
    """

    async def _db():
        yield db_session

    app.dependency_overrides[get_async_db] = _db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_current_user] = lambda: admin_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """
    Headers for an authenticated request. Auth itself is mocked through
    dependency overrides, so the token value is never decoded.
    """
    return {"Authorization": "Bearer mock-token"}
