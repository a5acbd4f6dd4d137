"""FastAPI dependencies for service lookup, path ids and bearer-token authentication."""

import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .auth import TokenIssuer
from .config import Settings
from .errors import Err, ErrorKind, not_found
from .schemas import TokenClaims
from .services import AuthService, WorkItemService


# ==================== Application State ====================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_work_item_service(request: Request) -> WorkItemService:
    return request.app.state.work_item_service


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


# ==================== Path Parameters ====================

def get_work_item_id(item_id: str) -> uuid.UUID:
    """Parse the path id; anything that is not a UUID names no work item."""
    try:
        return uuid.UUID(item_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=not_found("Work item", item_id).error.to_dict(),
        )


# ==================== Authentication Dependencies ====================

# auto_error=False so a missing header is a 401 like any other bad token
security = HTTPBearer(auto_error=False)


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": ErrorKind.UNAUTHENTICATED.value,
            "message": message,
            "details": {},
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """Validate the bearer token. Any failure is a 401 with no further distinction."""
    if credentials is None:
        raise _unauthenticated("Authentication token is missing")

    result = token_issuer.validate(credentials.credentials)
    if isinstance(result, Err):
        raise _unauthenticated(result.error.message)
    return result.value
