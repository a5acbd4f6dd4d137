"""Configuration management and validation using Pydantic."""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


def _env_file() -> str | None:
    """Determine which .env file to load based on environment variables.

    Returns:
        None if SKIP_ENV_FILE is set (Docker/direct env vars) or the file is missing
        .env.{APP_ENV} file path otherwise (defaults to .env.dev)
    """
    if os.getenv("SKIP_ENV_FILE"):
        return None
    env_file = f".env.{os.getenv('APP_ENV', 'dev')}"
    return env_file if os.path.exists(env_file) else None


class Settings(BaseSettings):
    """Immutable application settings loaded from environment variables or .env files.

    Built once at process start and passed explicitly to the services and the HTTP layer.
    """

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Work Items API"
    APP_ENV: str = "dev"

    # ==================== Database ====================
    DB_URL: str = "sqlite+aiosqlite:///./workitems.db"
    DB_AUTO_CREATE: bool = True  # Create tables on startup; production uses Alembic
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for available connection
    DB_POOL_RECYCLE: int = 3600
    DB_CONNECT_TIMEOUT: int = 10
    DB_QUERY_TIMEOUT: int = 60

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:4200"  # Comma-separated allowed origins

    # ==================== Pagination ====================
    DEFAULT_PAGE: int = 1
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # ==================== JWT Authentication ====================
    JWT_SECRET_KEY: str  # Required, no default
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "WorkItemsApi"
    JWT_AUDIENCE: str = "WorkItemsApiUsers"
    JWT_EXPIRATION_HOURS: int = 24

    # ==================== Graceful Shutdown ====================
    GRACEFUL_SHUTDOWN_TIMEOUT: int = 30

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    # ==================== Redis Caching ====================
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300
    CACHE_ENABLED: bool = True

    # ==================== Monitoring ====================
    METRICS_ENABLED: bool = True

    @field_validator("DB_URL", mode="before")
    @classmethod
    def normalize_db_url(cls, v: str) -> str:
        """Normalize database URLs to their async drivers and reject unsupported schemes."""
        if not v:
            raise ValueError("DB_URL must not be empty")
        url = v.strip()
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite:///"):
            url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if not url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite:///")):
            raise ValueError("DB_URL must be a PostgreSQL or SQLite connection string")
        return url

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate that JWT_SECRET_KEY is provided and sufficiently long."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required but not provided in environment variables")
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long for security")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DB_URL.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process. A missing or weak secret fails here, at startup."""
    return Settings()
