"""Sort selection and list-query normalization for work items."""

from dataclasses import dataclass
from enum import Enum

from .models import WorkItemStatus, WorkItemPriority
from .utils import normalize_pagination


class SortField(str, Enum):
    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    UPDATED_AT = "updatedAt"
    CREATED_AT = "createdAt"

    @classmethod
    def parse(cls, value: str | None) -> "SortField":
        """Match the field name ignoring case; anything unrecognized sorts by createdAt."""
        if value:
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.CREATED_AT


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | None) -> "SortDirection":
        if value and value.strip().lower() == "desc":
            return cls.DESC
        return cls.ASC


@dataclass(frozen=True)
class WorkItemQuery:
    """A list request after clamping and parsing."""
    page: int
    page_size: int
    skip: int
    status: WorkItemStatus | None
    priority: WorkItemPriority | None
    sort_field: SortField
    sort_direction: SortDirection

    @classmethod
    def build(
        cls,
        page: int,
        page_size: int,
        status: WorkItemStatus | None = None,
        priority: WorkItemPriority | None = None,
        sort_by: str | None = None,
        sort_dir: str | None = None,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> "WorkItemQuery":
        page, page_size, skip = normalize_pagination(page, page_size, default_page_size, max_page_size)
        return cls(
            page=page,
            page_size=page_size,
            skip=skip,
            status=status,
            priority=priority,
            sort_field=SortField.parse(sort_by),
            sort_direction=SortDirection.parse(sort_dir),
        )
