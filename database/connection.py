"""
Database connection module - Async SQLAlchemy engine and session management.

Provides async database engine and session factory for the seeding CLI.
The engine is created on first use so that importing the package does
not require a reachable database.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import get_settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Create (once) the async engine configured by DATABASE_URL."""
    settings = get_settings()
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,  # Verify connections before using them
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,
    )


async def init_db(base) -> None:
    """
    Create all tables declared on the given declarative base.

    NOTE: Schema management is not a seeding concern; this is a
    convenience for local development and tests.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(base.metadata.create_all)


async def close_db() -> None:
    """
    Close database engine and all connections.

    Call this during application shutdown.
    """
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()
