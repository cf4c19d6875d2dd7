"""
Async database engine and session management

SQLite (aiosqlite) is the default store; any SQLAlchemy async URL works.
"""
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from config import get_config
from db.tables import metadata

logger = logging.getLogger(f'{__name__}.Database')


def create_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Build an async engine for the configured database.

    Args:
        database_url: Override the configured database URL
        echo: Override SQL echo logging

    Returns:
        AsyncEngine instance
    """
    config = get_config()
    url = database_url or config.database_url
    engine = create_async_engine(
        url,
        echo=config.database_echo if echo is None else echo,
    )

    if engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys off unless asked per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.debug(f"Created async engine for dialect '{engine.dialect.name}'")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory whose sessions keep loaded values after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database schema ensured")


# Global engine/session factory for reuse
_global_engine: Optional[AsyncEngine] = None
_global_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global engine, creating it from config on first use."""
    global _global_engine
    if _global_engine is None:
        _global_engine = create_engine()
    return _global_engine


def get_session_factory() -> async_sessionmaker:
    """
    Get the global session factory, creating the engine on first use.

    Returns:
        Shared async_sessionmaker bound to the global engine
    """
    global _global_session_factory
    if _global_session_factory is None:
        _global_session_factory = create_session_factory(get_engine())
    return _global_session_factory


async def cleanup_global_engine() -> None:
    """Dispose of the global engine. Call during shutdown."""
    global _global_engine, _global_session_factory
    if _global_engine is not None:
        await _global_engine.dispose()
        logger.debug("Disposed global database engine")
    _global_engine = None
    _global_session_factory = None
