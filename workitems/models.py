"""SQLAlchemy ORM models for database tables."""

import uuid
from enum import Enum

from sqlalchemy import Column, String, Uuid
from sqlalchemy import Enum as SAEnum
from .db import Base, UTCDateTime, utcnow

# ==================== Field Limits ====================

USERNAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2000


# ==================== Enums ====================

class _CaseInsensitiveEnum(str, Enum):
    """String enum whose lookup by value ignores case ("done" -> Done)."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class WorkItemStatus(_CaseInsensitiveEnum):
    TODO = "Todo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"


class WorkItemPriority(_CaseInsensitiveEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _enum_column(enum_cls, name: str) -> SAEnum:
    # Stored as the value string ("InProgress"), not the member name
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


# ==================== Models ====================

class User(Base):
    """User model mapped to 'users' table."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(USERNAME_MAX_LENGTH), nullable=False, unique=True, index=True)
    email = Column(String(EMAIL_MAX_LENGTH), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)


class WorkItem(Base):
    """Work item model mapped to 'work_items' table."""

    __tablename__ = "work_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=True)
    status = Column(
        _enum_column(WorkItemStatus, "work_item_status"),
        nullable=False,
        default=WorkItemStatus.TODO,
        index=True,
    )
    priority = Column(
        _enum_column(WorkItemPriority, "work_item_priority"),
        nullable=False,
        default=WorkItemPriority.MEDIUM,
        index=True,
    )
    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)
