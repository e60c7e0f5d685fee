import contextlib
from typing import AsyncGenerator, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.base import Base
from libs.db.session import get_async_db
from services.commerce_service import models as _commerce_models  # noqa: F401
from services.commerce_service.app.main import app


def make_user(
    user_id: str = "customer-1", role: str = "user", email: Optional[str] = None
) -> AuthUser:
    return AuthUser(
        user_id=user_id, email=email or f"{user_id}@example.com", role=role
    )


def make_admin_user(user_id: str = "admin-1") -> AuthUser:
    return make_user(user_id=user_id, role="admin")


@contextlib.contextmanager
def override_auth(target_app, user: AuthUser):
    """Temporarily authenticate every request as ``user``."""
    previous = target_app.dependency_overrides.get(get_current_user)
    target_app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            target_app.dependency_overrides.pop(get_current_user, None)
        else:
            target_app.dependency_overrides[get_current_user] = previous


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory SQLite database per test. StaticPool keeps the single
    connection alive so every session sees the same schema.
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


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the app, sharing the test session and
    authenticated as a regular customer unless a test overrides it.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: make_user()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
