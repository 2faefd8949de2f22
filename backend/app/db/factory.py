"""Database engine factory supporting SQLite (default) and DATABASE_URL (MySQL/Postgres).

The engine is created lazily here and disposed by the application lifespan;
request handlers receive sessions through get_session and pass them on to
repositories, so core logic never opens connections itself.
"""
from __future__ import annotations

import logging
import os
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_async_session_maker: sessionmaker[AsyncSession] | None = None

ASYNC_DRIVER_PREFIXES = (
    ("postgres://", "postgresql+asyncpg://"),
    ("postgresql://", "postgresql+asyncpg://"),
    ("mysql://", "mysql+aiomysql://"),
    ("mysql+pymysql://", "mysql+aiomysql://"),
)


def to_async_url(database_url: str) -> str:
    """Rewrite sync driver URLs to their async equivalents."""
    for prefix, replacement in ASYNC_DRIVER_PREFIXES:
        if database_url.startswith(prefix):
            return database_url.replace(prefix, replacement, 1)
    return database_url


def sqlite_file_path() -> str:
    db_path = settings.db_path
    if not os.path.isabs(db_path):
        db_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), db_path)
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    return db_path


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db_engine() -> AsyncEngine:
    """Get or create the database engine."""
    global _engine
    if _engine is not None:
        return _engine

    if settings.database_url:
        database_url = to_async_url(settings.database_url)
        logger.info("Using DATABASE_URL: %s", database_url.split("@")[-1] if "@" in database_url else database_url)
        _engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )
    else:
        db_path = sqlite_file_path()
        logger.info("Using SQLite: %s", db_path)
        _engine = create_async_engine(
            f"sqlite+aiosqlite:///{db_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        # Project deletes rely on ON DELETE CASCADE
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return _engine


def get_session_maker() -> sessionmaker[AsyncSession]:
    """Get or create the session maker."""
    global _async_session_maker
    if _async_session_maker is not None:
        return _async_session_maker

    _async_session_maker = sessionmaker(
        get_db_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    return _async_session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request (FastAPI dependency)."""
    async_session_maker = get_session_maker()
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database() -> None:
    """Create tables if needed (Alembic migrations are the source of truth in production)."""
    from app.db.models import Base

    engine = get_db_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def close_database() -> None:
    """Close database connections."""
    global _engine, _async_session_maker
    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
