"""Database CRUD operations for users and work items."""

import uuid

from sqlalchemy import case, select, func, or_
from sqlalchemy.exc import IntegrityError

from . import db
from .db import utcnow
from .models import User, WorkItem, WorkItemStatus, WorkItemPriority
from .query import SortField, SortDirection, WorkItemQuery
from .logger import logger


class DuplicateCredentialError(ValueError):
    """Unique index violation on users; ``field`` is "username", "email" or None if unknown."""

    def __init__(self, field: str | None):
        super().__init__(f"duplicate {field or 'credential'}")
        self.field = field


def _duplicate_field(error: IntegrityError) -> str | None:
    # SQLite: "UNIQUE constraint failed: users.email"; PostgreSQL names the index/key
    message = str(error.orig).lower()
    if "email" in message:
        return "email"
    if "username" in message:
        return "username"
    return None


# ==================== User Operations ====================


async def insert_user(username: str, email: str, password_hash: str) -> User:
    """Insert a new user. Raises DuplicateCredentialError on a unique index violation."""
    async with db.async_session() as session:
        try:
            async with session.begin():
                now = utcnow()
                user = User(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    created_at=now,
                    updated_at=now,
                )
                session.add(user)
            return user
        except IntegrityError as e:
            field = _duplicate_field(e)
            logger.debug(f"Duplicate {field or 'credential'} rejected by store")
            raise DuplicateCredentialError(field) from e


async def select_user_by_username(username: str) -> User | None:
    async with db.async_session() as session:
        result = await session.execute(select(User).where(User.username == username))
        return result.scalars().first()


async def select_user_by_email(email: str) -> User | None:
    async with db.async_session() as session:
        result = await session.execute(select(User).where(User.email == email))
        return result.scalars().first()


async def select_user_by_username_or_email(identifier: str) -> User | None:
    """First user whose username or email equals identifier exactly."""
    async with db.async_session() as session:
        result = await session.execute(
            select(User)
            .where(or_(User.username == identifier, User.email == identifier))
            .limit(1)
        )
        return result.scalars().first()


# ==================== Work Item Operations ====================


async def insert_work_item(
    title: str,
    description: str | None,
    priority: WorkItemPriority,
) -> WorkItem:
    """Insert a new work item; status always starts as Todo."""
    async with db.async_session() as session:
        async with session.begin():
            now = utcnow()
            item = WorkItem(
                title=title,
                description=description,
                status=WorkItemStatus.TODO,
                priority=priority,
                created_at=now,
                updated_at=now,
            )
            session.add(item)
        return item


async def select_work_item(item_id: uuid.UUID) -> WorkItem | None:
    async with db.async_session() as session:
        return await session.get(WorkItem, item_id)


async def update_work_item(
    item_id: uuid.UUID,
    title: str,
    description: str | None,
    status: WorkItemStatus,
    priority: WorkItemPriority,
) -> WorkItem | None:
    """Replace the mutable fields and bump updated_at. Returns None if the item does not exist."""
    async with db.async_session() as session:
        async with session.begin():
            item = await session.get(WorkItem, item_id)
            if item is None:
                return None
            item.title = title
            item.description = description
            item.status = status
            item.priority = priority
            item.updated_at = utcnow()
        return item


async def delete_work_item(item_id: uuid.UUID) -> bool:
    """Hard delete. Returns False if the item does not exist."""
    async with db.async_session() as session:
        async with session.begin():
            item = await session.get(WorkItem, item_id)
            if item is None:
                return False
            await session.delete(item)
        return True


def _ordinal(column, enum_cls):
    """Sort enum columns by declaration order instead of alphabetically."""
    return case({member.value: index for index, member in enumerate(enum_cls)}, value=column)


_SORT_COLUMNS = {
    SortField.TITLE: lambda: WorkItem.title,
    SortField.STATUS: lambda: _ordinal(WorkItem.status, WorkItemStatus),
    SortField.PRIORITY: lambda: _ordinal(WorkItem.priority, WorkItemPriority),
    SortField.UPDATED_AT: lambda: WorkItem.updated_at,
    SortField.CREATED_AT: lambda: WorkItem.created_at,
}


async def list_work_items(query: WorkItemQuery) -> tuple[list[WorkItem], int]:
    """Filter, count, sort and page work items. Returns the page and the filtered total."""
    async with db.async_session() as session:
        conditions: list = []
        if query.status is not None:
            conditions.append(WorkItem.status == query.status)
        if query.priority is not None:
            conditions.append(WorkItem.priority == query.priority)

        # Total count w/ same filters, before paging
        count_stmt = select(func.count()).select_from(WorkItem)
        if conditions:
            count_stmt = count_stmt.where(*conditions)
        total = (await session.execute(count_stmt)).scalar() or 0

        stmt = select(WorkItem)
        if conditions:
            stmt = stmt.where(*conditions)
        sort_column = _SORT_COLUMNS[query.sort_field]()
        # id breaks ties so pages never overlap
        if query.sort_direction is SortDirection.DESC:
            stmt = stmt.order_by(sort_column.desc(), WorkItem.id.desc())
        else:
            stmt = stmt.order_by(sort_column.asc(), WorkItem.id.asc())
        stmt = stmt.offset(query.skip).limit(query.page_size)

        result = await session.execute(stmt)
        items = list(result.scalars().all())
        logger.debug(f"Query executed: returned {len(items)} work items out of {total} total")
        return items, total
