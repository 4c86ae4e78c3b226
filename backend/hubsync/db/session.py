"""
Async database session management using SQLAlchemy 2.0.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hubsync.core.config import get_settings


@lru_cache
def get_async_engine() -> AsyncEngine:
    """Create the async engine lazily so importing this module needs no database."""
    settings = get_settings()
    return create_async_engine(
        settings.async_database_url,
        echo=settings.app_debug,
        pool_pre_ping=True,
    )


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine."""
    return async_sessionmaker(
        bind=get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

