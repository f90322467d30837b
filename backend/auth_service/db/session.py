"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
Using a context manager ensures proper connection cleanup and transaction management.
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from auth_service.core.config import Settings


class Database:
    """
    Async engine plus session factory for one application instance.

    WHY: The engine is built from the Settings handed to the app factory
    instead of at import time, so tests and multiple app instances never
    share a connection pool by accident.
    """

    def __init__(self, settings: Settings):
        # WHY: pool_pre_ping recycles stale connections; pool_timeout bounds
        # how long a request may wait for one before failing as an internal error.
        engine_kwargs = {"echo": settings.DEBUG, "pool_pre_ping": True}
        if settings.async_database_url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=10,
                max_overflow=20,
                pool_timeout=settings.DATABASE_TIMEOUT_SECONDS,
                connect_args={"timeout": settings.DATABASE_TIMEOUT_SECONDS},
            )

        self.engine: AsyncEngine = create_async_engine(
            settings.async_database_url,
            **engine_kwargs,
        )

        # expire_on_commit=False prevents lazy-loading issues after commit.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: FastAPI dependency injection ensures each request gets its own
    database session, with automatic cleanup via context manager.
    The try/except ensures the transaction is rolled back on any error.

    Yields:
        AsyncSession: Database session for the request
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
