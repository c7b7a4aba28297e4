"""
Database Configuration Loading

This module resolves the database connection URL from the application
settings or from individual DB_* environment variables.
"""

import os
import urllib.parse
from typing import Dict, Any

from lms.config import settings
from lms.common.logger import app_logger

logger = app_logger.getChild("db.config")

# Environment variable names
DB_TYPE_ENV = "DB_TYPE"  # postgresql or sqlite
DB_HOST_ENV = "DB_HOST"
DB_PORT_ENV = "DB_PORT"
DB_NAME_ENV = "DB_NAME"
DB_USER_ENV = "DB_USER"
DB_PASSWORD_ENV = "DB_PASSWORD"
DB_PATH_ENV = "DB_PATH"  # SQLite only

# Default values
DEFAULT_DB_TYPE = "sqlite"
DEFAULT_DB_HOST = "localhost"
DEFAULT_DB_PORT = 5432
DEFAULT_DB_NAME = "lms"
DEFAULT_DB_USER = "lms"
DEFAULT_DB_PASSWORD = "password"
DEFAULT_DB_PATH = "./lms.db"


def _normalize_url(database_url: str) -> str:
    """Force the async drivers used by the engine."""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + database_url[len("postgresql://"):]
    if database_url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + database_url[len("sqlite:///"):]
    return database_url


def get_database_settings() -> Dict[str, Any]:
    """
    Load database connection settings.

    ``DATABASE_URL`` wins when set; otherwise the URL is built from the
    individual DB_* variables.

    Returns:
        A dictionary containing database settings including the connection URL.
    """
    db_settings: Dict[str, Any] = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }

    if settings.DATABASE_URL:
        database_url = _normalize_url(settings.DATABASE_URL)
        db_settings["database_url"] = database_url
        if database_url.startswith("postgresql"):
            db_settings["db_type"] = "postgresql"
        elif database_url.startswith("sqlite"):
            db_settings["db_type"] = "sqlite"
        else:
            db_settings["db_type"] = "unknown"
        return db_settings

    db_type = os.environ.get(DB_TYPE_ENV, DEFAULT_DB_TYPE).lower()
    db_settings["db_type"] = db_type

    if db_type == "postgresql":
        user = os.environ.get(DB_USER_ENV, DEFAULT_DB_USER)
        password = urllib.parse.quote_plus(os.environ.get(DB_PASSWORD_ENV, DEFAULT_DB_PASSWORD))
        host = os.environ.get(DB_HOST_ENV, DEFAULT_DB_HOST)
        port = int(os.environ.get(DB_PORT_ENV, DEFAULT_DB_PORT))
        database = os.environ.get(DB_NAME_ENV, DEFAULT_DB_NAME)
        db_settings["database_url"] = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{database}"
    elif db_type == "sqlite":
        db_path = os.environ.get(DB_PATH_ENV, DEFAULT_DB_PATH)
        db_settings["database_url"] = f"sqlite+aiosqlite:///{db_path}"
    else:
        logger.error(f"Unsupported DB_TYPE: {db_type}")
        raise ValueError(f"Unsupported database type: {db_type}")

    logger.info(f"Constructed database URL for {db_type}")
    return db_settings
