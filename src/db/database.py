"""
Database connection and session management.
Uses SQLAlchemy 2.0 async patterns with asyncpg driver for PostgreSQL
or aiosqlite for local SQLite development.
"""

import logging
from functools import lru_cache

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.
    All models should inherit from this class.
    """
    pass


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """
    Creates an async engine configured for the target database.
    SQLite doesn't support pool_size/max_overflow, so configure accordingly.
    """
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Returns the application engine, created on first use."""
    settings = get_settings()
    return create_engine_for_url(settings.async_database_url, echo=settings.debug)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Returns the application session factory bound to get_engine()."""
    return create_session_factory(get_engine())


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Initializes the database by creating all tables.
    Called during application startup when the SQL backend is selected.
    Uses checkfirst semantics to only create tables that don't exist.
    """
    # Register models with Base.metadata before create_all
    import src.models  # noqa: F401

    engine = engine or get_engine()
    tables = list(Base.metadata.tables.keys())
    logger.info(f"Registered models for tables: {tables}")

    def get_existing_tables(connection):
        return inspect(connection).get_table_names()

    try:
        async with engine.begin() as conn:
            existing = await conn.run_sync(get_existing_tables)
            missing = [t for t in tables if t not in existing]
            logger.info(f"Missing tables to create: {missing}")
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {type(e).__name__}: {e}")
        raise
