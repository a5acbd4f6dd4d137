"""Redis cache management with connection pooling and graceful degradation."""

import json
from typing import Any, Optional
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from .config import Settings
from .logger import logger

# ==================== Cache Key Utilities ====================

WORK_ITEM_BY_ID_PREFIX = "work_item:id"


def make_cache_key(prefix: str, identifier: Any) -> str:
    """Generate consistent cache key with namespace (e.g. "work_item:id:<uuid>")."""
    return f"{prefix}:{identifier}"

# ==================== Cache Manager ====================


class CacheManager:
    """Manages Redis connections and cache operations with graceful degradation.

    If Redis is disabled or unavailable, operations return None/False and the
    application keeps serving from the database.
    """

    def __init__(self, settings: Settings):
        self._url = settings.REDIS_URL
        self._default_ttl = settings.CACHE_TTL
        self.enabled = settings.CACHE_ENABLED
        self._redis: Optional[aioredis.Redis] = None

    async def connect(self):
        """Open the connection pool and verify it with a ping; stays disconnected on failure."""
        if not self.enabled or self._redis is not None:
            return
        try:
            self._redis = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await self._redis.ping()
            logger.info("[cache] Connected to Redis")
        except (RedisError, OSError) as e:
            logger.error(f"[cache] Failed to connect to Redis: {e}")
            self._redis = None

    async def disconnect(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("[cache] Disconnected from Redis")

    async def get(self, key: str) -> Optional[dict]:
        """Cached value as dict, or None on miss or cache failure."""
        if not self._redis:
            return None

        try:
            value = await self._redis.get(key)
            if value:
                logger.debug(f"[cache] HIT: {key}")
                return json.loads(value)
            logger.debug(f"[cache] MISS: {key}")
            return None
        except (RedisError, ValueError) as e:
            logger.error(f"[cache] Error getting key {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        value: dict,
        ttl: Optional[int] = None
    ) -> bool:
        """Store a JSON-serializable dict with a TTL (None = configured default)."""
        if not self._redis:
            return False

        try:
            ttl = ttl or self._default_ttl
            await self._redis.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"[cache] SET: {key} (TTL={ttl}s)")
            return True
        except RedisError as e:
            logger.error(f"[cache] Error setting key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        if not self._redis:
            return False

        try:
            await self._redis.delete(key)
            logger.debug(f"[cache] DELETE: {key}")
            return True
        except RedisError as e:
            logger.error(f"[cache] Error deleting key {key}: {e}")
            return False

    async def health_check(self) -> bool:
        """True if Redis responds to ping."""
        if not self._redis:
            return False

        try:
            await self._redis.ping()
            return True
        except RedisError:
            return False
