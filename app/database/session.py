"""
Database Engine & Sessions
HealthMate API

Async SQLAlchemy over PostgreSQL (asyncpg) in deployment and SQLite
(aiosqlite) for local runs and the test suite. Request handlers get a session
from `get_db`; background analysis jobs open their own with `job_session`.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.database_url.startswith("sqlite")


# ── Engine ─────────────────────────────────────────────────────────
def _build_engine():
    if _is_sqlite:
        # Fresh connection per session: background jobs and request handlers
        # never share a connection across event loops.
        sqlite_engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )

        # Insights and vitals rely on ON DELETE CASCADE from users
        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


engine = _build_engine()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# ── Sessions ───────────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session: committed when the handler returns,
    rolled back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def job_session() -> AsyncIterator[AsyncSession]:
    """Session for work that outlives the request; the job commits explicitly."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ── Health / bootstrap ─────────────────────────────────────────────
async def check_database_connection() -> bool:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def init_db() -> None:
    """Create missing tables. Alembic owns schema changes after that."""
    # Register every model on Base.metadata before create_all
    from app.models import insight, uploaded_file, user, vitals  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")
