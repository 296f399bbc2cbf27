"""
Database Connection Module
Handles the relational store connection using SQLAlchemy async engine.
"""

import logging
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from foodie_hub.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores foreign keys unless asked on every new connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine with pool and isolation options for the URL."""
    if database_url.startswith("sqlite"):
        sqlite_engine = create_async_engine(database_url, echo=settings.database_echo)
        enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        database_url,
        echo=settings.database_echo,
        pool_size=settings.db_pool_size,  # Connection pool size
        max_overflow=settings.db_max_overflow,  # Extra connections when pool is full
        pool_timeout=settings.db_pool_timeout,  # Fail the request instead of waiting forever
        pool_pre_ping=True,
        isolation_level=settings.db_isolation_level,
    )


engine = build_engine(settings.database_url)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register the mapped classes on Base.metadata
    from foodie_hub import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database tables ready: {', '.join(sorted(Base.metadata.tables))}")
