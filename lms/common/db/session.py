"""
Database Session Management

FastAPI dependency that hands each request its own AsyncSession.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from lms.common.logger import app_logger
from lms.database.init_db import get_session_factory

logger = app_logger.getChild("db.session")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session.

    The session is committed when the request handler returns normally and
    rolled back if it raises.

    Yields:
        AsyncSession: The database session
    """
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.debug(f"Database session rolled back: {e}")
        raise
    finally:
        await session.close()
