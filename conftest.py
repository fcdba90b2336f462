import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load .env.test when present; otherwise fall back to an in-memory SQLite
# database and fixed processor secrets so the suite runs without services.
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_payments")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_payments")
# Keep the webhook not-found retry short in tests.
os.environ.setdefault("WEBHOOK_NOT_FOUND_RETRIES", "1")
os.environ.setdefault("WEBHOOK_RETRY_BACKOFF_SECONDS", "0.01")

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db
from services.payments_service import models as _payment_models  # noqa: F401
from services.payments_service.app.main import app
from services.payments_service.dependencies import get_lease_registry
from services.payments_service.processor_client import get_processor_client
from tests.stubs import FakeLeaseRegistry, FakeProcessor

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory database per test. StaticPool keeps every session on the
    same connection, which is what makes ``:memory:`` usable across sessions.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def leases() -> FakeLeaseRegistry:
    return FakeLeaseRegistry()


@pytest.fixture
def login_as():
    """
    Authenticate subsequent requests as the given user.

    Usage:
        login_as("T1")
        login_as("L1", Role.LANDLORD)
    """

    def _login(user_id: str, role: Role = Role.TENANT) -> AuthUser:
        user = AuthUser(user_id=user_id, email=None, role=role)
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest_asyncio.fixture
async def payments_client(
    db_session, processor, leases
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the payments app with the DB, processor and
    lease registry overridden. Requests are unauthenticated until ``login_as``.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_processor_client] = lambda: processor
    app.dependency_overrides[get_lease_registry] = lambda: leases

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

