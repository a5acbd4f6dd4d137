"""FastAPI application entry point with lifecycle management."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import db
from .auth import TokenIssuer
from .cache import CacheManager
from .config import Settings, get_settings
from .errors import ErrorKind, field_errors
from .logger import logger, setup_logger
from .middleware import (
    graceful_shutdown_middleware,
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
)
from .monitoring import setup_monitoring
from .routes import router
from .services import AuthService, WorkItemService

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Counts in-flight requests so shutdown can drain them before the store is closed.

    Only touched from the event loop thread.
    """

    poll_interval = 0.1

    def __init__(self, shutdown_timeout: float = 30):
        self.shutdown_timeout = shutdown_timeout
        self.active_requests = 0
        self.is_shutting_down = False

    def request_started(self):
        if self.is_shutting_down:
            return
        self.active_requests += 1

    def request_finished(self):
        self.active_requests -= 1

    async def initiate_shutdown(self):
        """Refuse new requests, then wait for active ones up to ``shutdown_timeout`` seconds."""
        if self.is_shutting_down:
            return
        self.is_shutting_down = True

        if not self.active_requests:
            logger.info("Shutdown: nothing in flight")
            return

        logger.info(f"Shutdown: draining {self.active_requests} in-flight request(s)")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.shutdown_timeout
        while self.active_requests > 0:
            if loop.time() >= deadline:
                logger.warning(
                    f"Shutdown: gave up after {self.shutdown_timeout}s "
                    f"with {self.active_requests} request(s) unfinished"
                )
                return
            await asyncio.sleep(self.poll_interval)

        logger.info("Shutdown: all requests drained")


# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and connect the cache on startup; drain and release on shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"{settings.APP_NAME} starting (env={settings.APP_ENV})")

    if settings.DB_AUTO_CREATE:
        await db.create_tables()
    else:
        logger.info("DB_AUTO_CREATE off, expecting schema from alembic upgrade")

    await app.state.cache.connect()
    logger.info(f"{settings.APP_NAME} ready")

    yield

    await app.state.shutdown_manager.initiate_shutdown()
    await app.state.cache.disconnect()
    await db.dispose_engine()
    logger.info(f"{settings.APP_NAME} stopped")


# ==================== Exception Handlers ====================


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400 with per-field messages, same shape as service errors."""
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "error": ErrorKind.VALIDATION_FAILED.value,
                "message": "One or more fields are invalid",
                "details": {"errors": field_errors(exc.errors())},
            }
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=exc)
    settings: Settings = request.app.state.settings
    message = "An unexpected error occurred" if settings.is_production else str(exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": ErrorKind.UNEXPECTED.value, "message": message, "details": {}}},
    )


# ==================== Application Setup ====================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one immutable Settings instance."""
    settings = settings or get_settings()
    setup_logger(settings)
    db.init_engine(settings)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    token_issuer = TokenIssuer(settings)
    cache = CacheManager(settings)
    app.state.settings = settings
    app.state.token_issuer = token_issuer
    app.state.cache = cache
    app.state.auth_service = AuthService(settings, token_issuer)
    app.state.work_item_service = WorkItemService(settings, cache)
    app.state.shutdown_manager = GracefulShutdownManager(settings.GRACEFUL_SHUTDOWN_TIMEOUT)

    # Middleware registration (last registered = outermost layer)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(add_request_id_middleware)
    app.middleware("http")(graceful_shutdown_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)
    setup_monitoring(app, settings)

    return app


app = create_app()
