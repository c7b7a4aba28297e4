"""Application configuration module."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Database settings
    DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    AUTO_DB_INIT: bool = True
    RUN_MIGRATIONS: bool = False

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # Auth settings
    JWT_ACCESS_SECRET: str = "dev-access-secret"
    JWT_REFRESH_SECRET: str = "dev-refresh-secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRES_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRES_DAYS: int = 7

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "LMS Backend"
    FRONTEND_URL: str = "http://localhost:5173"

    # Upload settings
    UPLOAD_DIR: str = "./uploads"
    MAX_FILE_SIZE: int = 100 * 1024 * 1024
    MAX_UPLOAD_FILES: int = 20

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 300
    RATE_LIMIT_PERIOD_SECONDS: int = 15 * 60
    REDIS_URL: Optional[str] = None

    SEED_DEFAULT_SUGGESTIONS: bool = True


# Create global settings instance
settings = Settings()
