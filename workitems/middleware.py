"""HTTP middleware: shutdown gating, request ids, access logging, security headers."""

import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse

from .logger import logger

REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Swagger UI pulls its assets from jsdelivr
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://cdn.jsdelivr.net; "
        "font-src 'self' https://cdn.jsdelivr.net"
    ),
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

HSTS_HEADER = ("Strict-Transport-Security", "max-age=31536000; includeSubDomains")


async def graceful_shutdown_middleware(request: Request, call_next):
    """Count in-flight requests; once shutdown starts, turn new ones away with 503."""
    manager = request.app.state.shutdown_manager
    if manager.is_shutting_down:
        logger.warning(f"Rejecting {request.method} {request.url.path} during shutdown")
        return JSONResponse(
            status_code=503,
            content={"detail": {
                "error": "SERVICE_UNAVAILABLE",
                "message": "Service is shutting down, retry shortly",
                "details": {},
            }},
            headers={"Retry-After": "10"},
        )

    manager.request_started()
    try:
        return await call_next(request)
    finally:
        manager.request_finished()


async def add_request_id_middleware(request: Request, call_next):
    """Reuse the caller's X-Request-ID or mint one, and echo it on the response."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def request_logging_middleware(request: Request, call_next):
    request_id = getattr(request.state, "request_id", "-")
    route = f"{request.method} {request.url.path}"
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(f"[{request_id}] {route} failed after {elapsed_ms:.1f}ms", exc_info=True)
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    log = logger.warning if response.status_code >= 500 else logger.info
    log(f"[{request_id}] {route} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)

    response.headers.update(SECURITY_HEADERS)
    # HSTS only behind real TLS
    if request.app.state.settings.is_production:
        response.headers[HSTS_HEADER[0]] = HSTS_HEADER[1]
    return response
