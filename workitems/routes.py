# API route definitions (HTTP layer)
# Maps requests to service calls and service errors to status codes

import uuid
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response

from . import db
from .errors import Err, ErrorKind, Result, ServiceError
from .utils import MAX_PAGE
from .models import WorkItemStatus, WorkItemPriority
from .schemas import (
    AuthResponse,
    ErrorResponse,
    PaginatedWorkItemResponse,
    TokenClaims,
    UserLogin,
    UserRegister,
    WorkItemCreate,
    WorkItemOut,
    WorkItemUpdate,
)
from .dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_claims,
    get_work_item_id,
    get_work_item_service,
)
from .services import AuthService, WorkItemService
from .config import Settings
from .logger import logger

T = TypeVar("T")

# ============================================================================
# Error Translation
# ============================================================================

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_CREDENTIAL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: ServiceError, settings: Settings) -> HTTPException:
    detail = error.to_dict()
    if error.kind is ErrorKind.UNEXPECTED and settings.is_production:
        detail["message"] = "An unexpected error occurred"
    headers = {"WWW-Authenticate": "Bearer"} if error.kind is ErrorKind.UNAUTHENTICATED else None
    return HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=detail, headers=headers)


def unwrap(result: Result[T], settings: Settings) -> T:
    """Return the success value or raise the HTTP error for the failure kind."""
    if isinstance(result, Err):
        raise to_http_exception(result.error, settings)
    return result.value


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    404: {"model": ErrorResponse, "description": "Work item not found"},
}


router = APIRouter()

@router.get("/")
def root(settings: Settings = Depends(get_app_settings)):
    return {"app": settings.APP_NAME, "env": settings.APP_ENV}


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_app_settings)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if service and database are healthy (cache may be degraded)
        - 503 Service Unavailable if the database is unreachable
    """
    cache = request.app.state.cache
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
    }

    if await db.check_db_connection():
        health_status["database"] = "connected"
    else:
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        raise HTTPException(status_code=503, detail=health_status)

    if cache.enabled:
        is_healthy = await cache.health_check()
        health_status["cache"] = "connected" if is_healthy else "disconnected"
        if not is_healthy:
            health_status["status"] = "degraded"  # Service works but cache is down
    else:
        health_status["cache"] = "disabled"

    return health_status


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

@router.post(
    "/api/auth/register",
    response_model=AuthResponse,
    status_code=201,
    responses={400: ERROR_RESPONSES[400]},
)
async def register(
    user: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Register a new user and return a session token.

    Raises:
        400: Invalid input, username or email already exists
    """
    result = await auth_service.register(user.username, user.email, user.password)
    return unwrap(result, settings)


@router.post(
    "/api/auth/login",
    response_model=AuthResponse,
    responses={400: ERROR_RESPONSES[400], 401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    credentials: UserLogin,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Authenticate with username or email and return a session token.

    The token goes in subsequent requests as ``Authorization: Bearer <token>``.
    """
    result = await auth_service.login(credentials.username_or_email, credentials.password)
    return unwrap(result, settings)


# ============================================================================
# Work Item Endpoints
# ============================================================================

@router.get("/api/work-items", response_model=PaginatedWorkItemResponse)
async def list_work_items(
    page: int | None = Query(None, le=MAX_PAGE),
    page_size: int | None = Query(None, alias="pageSize", le=MAX_PAGE),
    status: WorkItemStatus | None = None,
    priority: WorkItemPriority | None = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_dir: str = Query("desc", alias="sortDir"),
    service: WorkItemService = Depends(get_work_item_service),
    settings: Settings = Depends(get_app_settings),
):
    """List work items, newest first unless told otherwise.

    Out-of-range ``page``/``pageSize`` are clamped; unknown ``sortBy`` falls back to createdAt.
    Omitted paging falls back to the configured defaults.
    """
    result = await service.list(
        page=page,
        page_size=page_size,
        status=status,
        priority=priority,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return unwrap(result, settings)


@router.get(
    "/api/work-items/{item_id}",
    response_model=WorkItemOut,
    responses={404: ERROR_RESPONSES[404]},
)
async def get_work_item(
    item_id: uuid.UUID = Depends(get_work_item_id),
    service: WorkItemService = Depends(get_work_item_service),
    settings: Settings = Depends(get_app_settings),
):
    return unwrap(await service.get(item_id), settings)


@router.post(
    "/api/work-items",
    response_model=WorkItemOut,
    status_code=201,
    responses={400: ERROR_RESPONSES[400], 401: ERROR_RESPONSES[401]},
)
async def create_work_item(
    body: WorkItemCreate,
    claims: TokenClaims = Depends(get_current_claims),
    service: WorkItemService = Depends(get_work_item_service),
    settings: Settings = Depends(get_app_settings),
):
    result = await service.create(body.title, body.description, body.priority)
    item = unwrap(result, settings)
    logger.info(f"Work item {item.id} created by user {claims.user_id}")
    return item


@router.put(
    "/api/work-items/{item_id}",
    response_model=WorkItemOut,
    responses=ERROR_RESPONSES,
)
async def update_work_item(
    body: WorkItemUpdate,
    item_id: uuid.UUID = Depends(get_work_item_id),
    claims: TokenClaims = Depends(get_current_claims),
    service: WorkItemService = Depends(get_work_item_service),
    settings: Settings = Depends(get_app_settings),
):
    result = await service.update(item_id, body.title, body.description, body.status, body.priority)
    return unwrap(result, settings)


@router.delete(
    "/api/work-items/{item_id}",
    status_code=204,
    responses={401: ERROR_RESPONSES[401], 404: ERROR_RESPONSES[404]},
)
async def delete_work_item(
    item_id: uuid.UUID = Depends(get_work_item_id),
    claims: TokenClaims = Depends(get_current_claims),
    service: WorkItemService = Depends(get_work_item_service),
    settings: Settings = Depends(get_app_settings),
):
    unwrap(await service.delete(item_id), settings)
    return Response(status_code=204)
