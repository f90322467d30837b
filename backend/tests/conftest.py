"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# auth_service.main builds a module-level app from the environment on import
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth_service.core.config import Settings
from auth_service.db.session import get_db
from auth_service.main import create_app
from auth_service.middleware.rate_limiter import InMemoryRateLimiter, RateLimitConfig
from auth_service.models.base import Base
from auth_service.services.email import EmailService
from tests.fakes import (
    TEST_ASYNC_DATABASE_URL,
    FakeClock,
    RecordingEmailProvider,
    make_settings,
)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation. StaticPool keeps
    the single in-memory database alive across connections.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def email_service(test_settings, email_provider) -> EmailService:
    return EmailService(test_settings, provider=email_provider)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(test_settings, fake_clock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(
        RateLimitConfig(
            requests_per_window=test_settings.RATE_LIMIT_REQUESTS,
            window_seconds=test_settings.RATE_LIMIT_WINDOW_SECONDS,
        ),
        clock=fake_clock,
    )


@pytest.fixture
def app(test_settings, rate_limiter, email_service, db_session):
    """
    Application wired to the test database, fake clock and recording email.

    WHY: get_db is overridden so requests and assertions share one session.
    """
    application = create_app(
        settings=test_settings,
        rate_limiter=rate_limiter,
        email_service=email_service,
    )

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server, making tests faster and more reliable.

    Yields:
        AsyncClient: HTTP client for making test requests
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def api_prefix(test_settings) -> str:
    return test_settings.API_PREFIX


@pytest.fixture
def sample_user_data() -> dict:
    """
    Sample signup data for tests.

    WHY: Centralizing test data ensures consistency across tests
    and makes it easy to update test data in one place.
    """
    return {
        "name": "Ana",
        "email": "ana@x.com",
        "password": "secret1",
    }
