"""Database engine, session management, and resilience utilities."""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import DateTime, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy.types import TypeDecorator

from .config import Settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()

# Set by init_engine() at application startup; tests swap async_session for their own factory
engine: AsyncEngine | None = None
async_session: async_sessionmaker[AsyncSession] | None = None


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops tzinfo on the way out; values read back are tagged as UTC again.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==================== Connection Pool Setup ====================

def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine; PostgreSQL gets a tuned pool, SQLite a NullPool."""
    if settings.is_sqlite:
        return create_async_engine(
            settings.DB_URL,
            echo=False,
            poolclass=NullPool,
        )

    return create_async_engine(
        settings.DB_URL,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before use
        connect_args={
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "command_timeout": settings.DB_QUERY_TIMEOUT,
        },
    )


def init_engine(settings: Settings) -> AsyncEngine:
    """Build the engine and session factory used by the CRUD layer."""
    global engine, async_session
    engine = create_engine(settings)
    async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    if settings.is_sqlite:
        logger.info("Database engine configured: sqlite (NullPool)")
    else:
        logger.info(
            f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
            f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
        )
    return engine


async def create_tables() -> None:
    """Create all tables that do not exist yet (development / SQLite deployments)."""
    # Registers the mapped classes on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


# ==================== Database Resilience ====================

# Substrings of driver errors worth another attempt; anything else (constraints, syntax) is final
TRANSIENT_ERROR_MARKERS = (
    "connection",
    "timeout",
    "database is locked",
    "server closed the connection",
)


def is_transient(error: DBAPIError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


async def retry_on_db_error(func, max_retries: int = 3, base_delay: float = 0.5):
    """Await ``func()``, retrying transient driver errors with exponential backoff.

    The delay before retry n is ``base_delay * 2**n``. Non-transient errors and the
    final failed attempt are re-raised unchanged.
    """
    for attempt in range(1, max_retries + 1):
        try:
            return await func()
        except DBAPIError as e:
            if attempt == max_retries or not is_transient(e):
                logger.error(f"Database call failed on attempt {attempt}/{max_retries}: {e}")
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"Transient database error ({e}); attempt {attempt}/{max_retries}, retry in {delay}s")
            await asyncio.sleep(delay)


async def check_db_connection() -> bool:
    """Run ``SELECT 1`` through the session factory. Never raises."""
    async def ping():
        async with async_session() as session:
            await session.execute(text("SELECT 1"))

    try:
        await retry_on_db_error(ping, max_retries=2, base_delay=0.1)
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


# ==================== Shutdown ====================


async def dispose_engine():
    """Release pooled connections; called from the application lifespan."""
    if engine is None:
        return
    try:
        await engine.dispose()
    except Exception:
        logger.error("Failed to dispose database engine", exc_info=True)
    else:
        logger.info("Database engine disposed")
