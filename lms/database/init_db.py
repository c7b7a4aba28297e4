"""
Database initialization and connection management.

This module provides functions for:
1. Creating the global async engine and session factory
2. Creating the schema directly or through Alembic migrations
3. Disposing of the connection pool on shutdown
"""

from pathlib import Path
from typing import Any, Dict, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lms.common.error_handling import DatabaseConnectionError, retry
from lms.common.logger import app_logger
from lms.database.base import Base

logger = app_logger.getChild("database.init_db")

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the global async session factory."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


def get_engine_kwargs(
    database_url: str,
    echo: bool,
    pool_size: int,
    max_overflow: int,
    pool_timeout: int,
) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    Different databases support different connection options.
    """
    kwargs: Dict[str, Any] = {"echo": echo}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    elif database_url.startswith("sqlite") and ":memory:" in database_url:
        # One shared connection, otherwise every checkout sees an empty database
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return kwargs


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@retry(max_retries=3, retry_delay=1.0, ignore_exceptions=(ValueError,))
async def _check_connection(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool

    Returns:
        AsyncEngine instance

    Raises:
        DatabaseConnectionError: If the database cannot be reached
    """
    global _engine, _session_factory

    logger.info(f"Initializing database with URL: {database_url[:16]}...")

    _engine = create_async_engine(
        database_url,
        **get_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
    )
    if database_url.startswith("sqlite"):
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        await _check_connection(_engine)
    except Exception as e:
        logger.error(f"Failed to initialize async database: {e}")
        raise DatabaseConnectionError(database_url.split("://", 1)[0], cause=e) from e

    logger.info("Database engine initialized successfully")
    return _engine


async def create_tables() -> None:
    """Create every table known to the model metadata."""
    # Register every model on the metadata
    import lms.database.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


def get_alembic_config(database_url: str) -> Config:
    """Build an Alembic config pointing at the bundled migration scripts."""
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def run_migrations(database_url: str, revision: str = "head") -> None:
    """
    Upgrade the schema with Alembic.

    Must be called outside a running event loop; the migration environment
    drives its own async engine.
    """
    logger.info(f"Running migrations up to {revision}")
    command.upgrade(get_alembic_config(database_url), revision)


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        try:
            await _engine.dispose()
            logger.info("Database engine closed successfully")
        except Exception as e:
            logger.error(f"Error closing database engine: {e}")
            raise
        finally:
            _engine = None
            _session_factory = None
