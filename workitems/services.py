"""Business logic layer for authentication and work items.

Every operation returns a ``Result``: ``Ok`` with the response schema, or ``Err`` with
exactly one ``ErrorKind``. Nothing here knows about HTTP status codes.
"""

import uuid

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .auth import TokenIssuer, hash_password, verify_password
from .cache import CacheManager, make_cache_key, WORK_ITEM_BY_ID_PREFIX
from .config import Settings
from .crud import (
    DuplicateCredentialError,
    insert_user,
    select_user_by_username,
    select_user_by_email,
    select_user_by_username_or_email,
    insert_work_item,
    select_work_item,
    update_work_item,
    delete_work_item,
    list_work_items,
)
from .errors import (
    ErrorKind,
    Err,
    Ok,
    Result,
    ServiceError,
    field_errors,
    not_found,
    unexpected,
    validation_failed,
)
from .logger import logger
from .models import User, WorkItemStatus, WorkItemPriority
from .query import WorkItemQuery
from .schemas import (
    AuthResponse,
    PaginatedWorkItemResponse,
    UserLogin,
    UserRegister,
    WorkItemCreate,
    WorkItemOut,
    WorkItemUpdate,
)
from .utils import count_pages


def _duplicate(field: str | None) -> Err:
    label = {"username": "Username", "email": "Email"}.get(field, "Username or email")
    return Err(ServiceError(
        ErrorKind.DUPLICATE_CREDENTIAL,
        f"{label} already exists",
        {"field": field} if field else {},
    ))


# ==================== Authentication ====================


class AuthService:
    """Registers and authenticates users and mints their session tokens."""

    def __init__(self, settings: Settings, token_issuer: TokenIssuer | None = None):
        self.settings = settings
        self.token_issuer = token_issuer or TokenIssuer(settings)

    def _token_response(self, user: User) -> AuthResponse:
        token, expires_at = self.token_issuer.issue(user.id, user.username, user.email)
        return AuthResponse(
            token=token,
            username=user.username,
            email=user.email,
            expires_at=expires_at,
        )

    async def register(self, username: str, email: str, password: str) -> Result[AuthResponse]:
        """Create an account and return a fresh token for it."""
        try:
            data = UserRegister(username=username, email=email, password=password)
        except ValidationError as e:
            return validation_failed(field_errors(e.errors()))

        logger.info(f"Registering new user: {data.username}")

        try:
            if await select_user_by_username(data.username):
                logger.warning(f"Registration failed - username already exists: {data.username}")
                return _duplicate("username")
            if await select_user_by_email(data.email):
                logger.warning(f"Registration failed - email already exists: {data.email}")
                return _duplicate("email")

            user = await insert_user(data.username, data.email, hash_password(data.password))
        except DuplicateCredentialError as e:
            # A concurrent registration won the race past the pre-check
            logger.warning(f"Registration rejected by unique index: {data.username} ({e.field})")
            return _duplicate(e.field)
        except SQLAlchemyError:
            logger.error(f"Registration failed for {data.username}", exc_info=True)
            return unexpected()

        logger.info(f"User registered successfully: id={user.id} username={user.username}")
        return Ok(self._token_response(user))

    async def login(self, username_or_email: str, password: str) -> Result[AuthResponse]:
        """Authenticate by username or email. Unknown user and wrong password look identical."""
        try:
            data = UserLogin(username_or_email=username_or_email, password=password)
        except ValidationError as e:
            return validation_failed(field_errors(e.errors()))

        logger.info(f"Authentication attempt for: {data.username_or_email}")

        try:
            user = await select_user_by_username_or_email(data.username_or_email)
        except SQLAlchemyError:
            logger.error("Login lookup failed", exc_info=True)
            return unexpected()

        if user is None or not verify_password(data.password, user.password_hash):
            logger.warning(f"Authentication failed for: {data.username_or_email}")
            return Err(ServiceError(
                ErrorKind.INVALID_CREDENTIALS,
                "Invalid username/email or password",
            ))

        logger.info(f"Authentication successful: id={user.id}")
        return Ok(self._token_response(user))


# ==================== Work Items ====================


class WorkItemService:
    """Validates, filters, sorts, pages and mutates work items."""

    def __init__(self, settings: Settings, cache: CacheManager):
        self.settings = settings
        self.cache = cache

    async def _cache_item(self, item_out: WorkItemOut) -> None:
        if self.cache.enabled:
            await self.cache.set(
                make_cache_key(WORK_ITEM_BY_ID_PREFIX, item_out.id),
                item_out.model_dump(mode="json"),
            )

    async def _invalidate(self, item_id: uuid.UUID) -> None:
        if self.cache.enabled:
            await self.cache.delete(make_cache_key(WORK_ITEM_BY_ID_PREFIX, item_id))

    async def list(
        self,
        page: int | None = None,
        page_size: int | None = None,
        status: WorkItemStatus | None = None,
        priority: WorkItemPriority | None = None,
        sort_by: str = "createdAt",
        sort_dir: str = "desc",
    ) -> Result[PaginatedWorkItemResponse]:
        """List work items with clamped pagination, optional filters, and sorting."""
        query = WorkItemQuery.build(
            self.settings.DEFAULT_PAGE if page is None else page,
            self.settings.DEFAULT_PAGE_SIZE if page_size is None else page_size,
            status=status,
            priority=priority,
            sort_by=sort_by,
            sort_dir=sort_dir,
            default_page_size=self.settings.DEFAULT_PAGE_SIZE,
            max_page_size=self.settings.MAX_PAGE_SIZE,
        )
        logger.debug(
            f"Listing work items: page={query.page} page_size={query.page_size} "
            f"filters=(status={query.status}, priority={query.priority}) "
            f"sort={query.sort_field.value} {query.sort_direction.value}"
        )

        try:
            items, total = await list_work_items(query)
        except SQLAlchemyError:
            logger.error("Failed to list work items", exc_info=True)
            return unexpected()

        return Ok(PaginatedWorkItemResponse(
            items=[WorkItemOut.model_validate(i) for i in items],
            page=query.page,
            page_size=query.page_size,
            total_count=total,
            total_pages=count_pages(total, query.page_size),
        ))

    async def get(self, item_id: uuid.UUID) -> Result[WorkItemOut]:
        """Retrieve a work item by ID with caching."""
        if self.cache.enabled:
            cached = await self.cache.get(make_cache_key(WORK_ITEM_BY_ID_PREFIX, item_id))
            if cached:
                return Ok(WorkItemOut.model_validate(cached))

        try:
            item = await select_work_item(item_id)
        except SQLAlchemyError:
            logger.error(f"Failed to fetch work item id={item_id}", exc_info=True)
            return unexpected()

        if item is None:
            logger.warning(f"Work item not found: id={item_id}")
            return not_found("Work item", item_id)

        item_out = WorkItemOut.model_validate(item)
        await self._cache_item(item_out)
        return Ok(item_out)

    async def create(
        self,
        title: str,
        description: str | None = None,
        priority: WorkItemPriority | str = WorkItemPriority.MEDIUM,
    ) -> Result[WorkItemOut]:
        """Create a work item. Status always starts as Todo."""
        try:
            data = WorkItemCreate(title=title, description=description, priority=priority)
        except ValidationError as e:
            return validation_failed(field_errors(e.errors()))

        try:
            item = await insert_work_item(data.title, data.description, data.priority)
        except SQLAlchemyError:
            logger.error("Failed to create work item", exc_info=True)
            return unexpected()

        logger.info(f"Work item created: id={item.id} priority={item.priority.value}")
        return Ok(WorkItemOut.model_validate(item))

    async def update(
        self,
        item_id: uuid.UUID,
        title: str,
        description: str | None,
        status: WorkItemStatus | str,
        priority: WorkItemPriority | str,
    ) -> Result[WorkItemOut]:
        """Replace title, description, status and priority wholesale."""
        try:
            data = WorkItemUpdate(title=title, description=description, status=status, priority=priority)
        except ValidationError as e:
            return validation_failed(field_errors(e.errors()))

        try:
            item = await update_work_item(item_id, data.title, data.description, data.status, data.priority)
        except SQLAlchemyError:
            logger.error(f"Failed to update work item id={item_id}", exc_info=True)
            return unexpected()

        if item is None:
            logger.warning(f"Cannot update - work item not found: id={item_id}")
            return not_found("Work item", item_id)

        await self._invalidate(item_id)
        logger.info(f"Work item updated: id={item_id} status={item.status.value}")
        return Ok(WorkItemOut.model_validate(item))

    async def delete(self, item_id: uuid.UUID) -> Result[None]:
        """Hard delete a work item and drop its cached copy."""
        try:
            deleted = await delete_work_item(item_id)
        except SQLAlchemyError:
            logger.error(f"Failed to delete work item id={item_id}", exc_info=True)
            return unexpected()

        if not deleted:
            logger.warning(f"Cannot delete - work item not found: id={item_id}")
            return not_found("Work item", item_id)

        await self._invalidate(item_id)
        logger.info(f"Work item deleted: id={item_id}")
        return Ok(None)
