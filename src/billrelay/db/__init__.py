"""
Database Module

SQLAlchemy async database configuration for the member store.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
import structlog

from billrelay.config import Settings

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Base Model
# ══════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


# ══════════════════════════════════════════════════════════════
# Engine & Session Factory
# ══════════════════════════════════════════════════════════════

_engine: AsyncEngine | None = None


def _engine_options(settings: Settings) -> dict:
    # SQLite (used in tests) rejects pool sizing arguments
    if settings.async_database_url.startswith("sqlite"):
        return {"echo": settings.database_echo}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        "echo": settings.database_echo,
    }


async def init_db(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Initialize database connection pool."""
    global _engine

    _engine = create_async_engine(
        settings.async_database_url,
        **_engine_options(settings),
    )

    session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    logger.info("Database connection pool initialized")
    return session_factory


async def close_db() -> None:
    """Close database connection pool."""
    global _engine

    if _engine:
        await _engine.dispose()
        _engine = None
        logger.info("Database connection pool closed")


async def create_tables() -> None:
    """Create all tables that do not exist yet."""
    if not _engine:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Import models to ensure they're registered with Base
from billrelay.db.models import MemberModel

__all__ = [
    "Base",
    "init_db",
    "close_db",
    "create_tables",
    "session_scope",
    "MemberModel",
]
