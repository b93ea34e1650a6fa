"""Async database session management for SQLAlchemy 2.0+.

PostgreSQL is used through asyncpg with a pooled engine; SQLite through
aiosqlite for local runs and tests.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from apodcache.app.core.config import settings
from apodcache.app.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=4)
def get_async_engine(database_url: str | None = None) -> AsyncEngine:
    """Get or create the async database engine for ``database_url``.

    Cached with lru_cache so each URL gets a single engine.

    Args:
        database_url: Optional database URL. Uses settings if not provided.

    Returns:
        AsyncEngine instance
    """
    url = database_url or settings.database_url

    if "sqlite" in url.lower():
        engine = create_async_engine(url, echo=False)
        logger.info("Created SQLite async engine")
    else:
        engine = create_async_engine(
            url,
            echo=False,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=settings.db_pool_pre_ping,
        )
        logger.info(
            f"Created PostgreSQL async engine (pool_size={settings.db_pool_size}, "
            f"max_overflow={settings.db_max_overflow}, "
            f"pool_timeout={settings.db_pool_timeout}s)"
        )
    return engine


def get_async_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Build a session maker bound to ``engine`` (default engine if omitted)."""
    return async_sessionmaker(
        bind=engine or get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_async_engine(engine: AsyncEngine | None = None) -> None:
    """Dispose the engine and forget cached engines.

    Call this on application shutdown to release database connections.
    """
    engine = engine or get_async_engine()
    await engine.dispose()
    logger.debug("Async engine disposed successfully")
    get_async_engine.cache_clear()
