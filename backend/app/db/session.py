# backend/app/db/session.py
"""
Async engine and session factory (asyncpg in production, aiosqlite for
local dev and tests).

Breach record upserts rely on the database for per-key serialization
(ON CONFLICT row lock in PostgreSQL, the write lock in SQLite), so the
SQLite busy timeout is raised to let concurrent writers queue instead
of failing fast.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from backend.app.core.config import settings

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def _create_async_engine() -> AsyncEngine:
    """SQLite gets NullPool and a long busy timeout; PostgreSQL a small queue pool."""
    if settings.is_sqlite:
        return create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def dialect_insert(db: AsyncSession):
    """
    Return the dialect-specific ``insert`` construct for the session's bind.

    Both PostgreSQL and SQLite variants support ``on_conflict_do_update`` /
    ``on_conflict_do_nothing``; the generic ``sqlalchemy.insert`` does not.
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect for upserts: {dialect_name}")


engine: AsyncEngine = _create_async_engine()

# Records returned from services stay readable after commit
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)
