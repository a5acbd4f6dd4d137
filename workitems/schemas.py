"""Pydantic schemas for request/response validation and serialization.

Wire names are camelCase (``usernameOrEmail``, ``pageSize``, ``createdAt``); Python code
uses the snake_case field names.
"""

import uuid
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    WorkItemStatus,
    WorkItemPriority,
    USERNAME_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== Error Schemas ====================

class ErrorResponse(BaseModel):
    """Standardized error response with code and message."""
    error: str
    message: str
    details: dict | None = None


# ==================== Authentication Schemas ====================

class UserRegister(CamelModel):
    """Schema for user registration with password."""
    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LENGTH)
    email: str = Field(..., max_length=EMAIL_MAX_LENGTH)
    password: str = Field(..., min_length=6, max_length=100)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Reject whitespace-only usernames; the value is stored exactly as given."""
        if not v.strip():
            raise ValueError("Username cannot be empty or only whitespace")
        return v

    @field_validator('email')
    @classmethod
    def validate_email_syntax(cls, v: str) -> str:
        """Check the address syntax without normalizing it, so login can match it verbatim."""
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: {e}") from e
        return v


class UserLogin(CamelModel):
    """Schema for login by username or email."""
    username_or_email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
    """Token payload returned by register and login."""
    token: str
    username: str
    email: str
    expires_at: datetime


class TokenClaims(BaseModel):
    """Identity carried by a validated session token."""
    user_id: uuid.UUID
    username: str
    email: str
    token_id: str
    expires_at: datetime


# ==================== Work Item Schemas ====================

class WorkItemCreate(CamelModel):
    """Create request; any client-supplied status or timestamps are ignored."""
    title: str = Field(..., min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    priority: WorkItemPriority = WorkItemPriority.MEDIUM


class WorkItemUpdate(CamelModel):
    """Full replacement of the mutable fields."""
    title: str = Field(..., min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    status: WorkItemStatus
    priority: WorkItemPriority


class WorkItemOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None
    status: WorkItemStatus
    priority: WorkItemPriority
    created_at: datetime
    updated_at: datetime


# ==================== Pagination Schemas ====================

class PaginatedWorkItemResponse(CamelModel):
    """Paginated response with work items and metadata."""
    items: list[WorkItemOut]
    page: int
    page_size: int
    total_count: int
    total_pages: int
