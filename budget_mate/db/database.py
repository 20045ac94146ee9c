# db/database.py

import logging
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .. import config
from .base import Base

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Creates the async engine on first use from DATABASE_URL."""
    global _engine
    if _engine is None:
        if not config.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is not set.")

        _engine = create_async_engine(
            config.async_database_url(config.DATABASE_URL),
            pool_size=config.DB_POOL_SIZE, # Matching the Supabase pool size limit
            max_overflow=config.DB_MAX_OVERFLOW,
            echo=config.DB_ECHO, # Set to True for debugging SQL queries
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False, # Essential for working with ORM objects outside the session
        )
    return _session_factory


# --- Dependency Function for FastAPI ---

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yields an AsyncSession per request. Commits when the endpoint finishes
    and rolls back if it raised.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.warning("Rolling back request session after an error.")
            await session.rollback()
            raise


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


# --- Utility for creating tables (Use this for initial setup/migrations) ---

async def create_db_and_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Creates all defined tables in the database.
    In production the Supabase migrations own the schema.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        # Import all model modules so that SQLAlchemy knows about them
        from ..models import profile, envelope, income_source, transaction, allocation_plan  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully.")
