"""
Redis cache management.

The cache is advisory: every operation fails open. When Redis is not
configured, unreachable or erroring, reads return None and writes return
False. No method of RedisCache raises to its caller.
"""
import json
import logging
from datetime import date
from typing import Any, Optional

from fastapi import Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ballot.config import settings

logger = logging.getLogger(__name__)

# Errors absorbed by the fail-open contract
CACHE_ERRORS = (RedisError, OSError)


class RedisCache:
    """Redis cache manager with connection pooling."""

    def __init__(self, url: Optional[str] = None, password: Optional[str] = None):
        """
        Initialize without connecting.

        Args:
            url: Redis URL (defaults to settings.redis_url, empty disables caching)
            password: Redis password (defaults to settings.redis_password)
        """
        self.url = settings.redis_url if url is None else url
        self.password = settings.redis_password if password is None else password
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis, or run without cache on failure."""
        if not self.url:
            logger.info("No Redis URL provided - running without Redis cache")
            self.redis = None
            return

        try:
            self.redis = aioredis.from_url(
                self.url,
                password=self.password or None,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except CACHE_ERRORS as e:
            logger.warning(f"Could not connect to Redis, running without cache: {e}")
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis is None:
            return
        try:
            await self.redis.aclose()
        except CACHE_ERRORS as e:
            logger.warning(f"Error closing Redis connection: {e}")
        finally:
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value (JSON-decoded when possible) or None if absent or
            the cache is unavailable
        """
        if self.redis is None:
            return None

        try:
            value = await self.redis.get(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Value to cache (dicts and lists are stored as JSON)
            ttl: Time to live in seconds

        Returns:
            True if stored
        """
        if self.redis is None:
            return False

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        try:
            if ttl:
                return bool(await self.redis.setex(key, ttl, value))
            return bool(await self.redis.set(key, value))
        except CACHE_ERRORS as e:
            logger.warning(f"Redis set failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key

        Returns:
            True if key was deleted
        """
        if self.redis is None:
            return False

        try:
            return bool(await self.redis.delete(key))
        except CACHE_ERRORS as e:
            logger.warning(f"Redis delete failed for {key}: {e}")
            return False

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        if self.redis is None:
            return False

        try:
            return bool(await self.redis.exists(key))
        except CACHE_ERRORS as e:
            logger.warning(f"Redis exists failed for {key}: {e}")
            return False

    async def ping(self) -> bool:
        """Check that Redis answers."""
        if self.redis is None:
            return False

        try:
            return bool(await self.redis.ping())
        except CACHE_ERRORS as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


def get_cache(request: Request) -> RedisCache:
    """Dependency returning the application's cache handle."""
    return request.app.state.cache


# Key helpers

def vote_marker_key(user_id: str, poll_id: str, day: date) -> str:
    """Same-day vote marker key for (user, poll, UTC day)."""
    return f"vote:{user_id}:{poll_id}:{day.isoformat()}"


def poll_results_key(poll_id: str) -> str:
    """Result snapshot key for a poll."""
    return f"poll_results:{poll_id}"


def token_blacklist_key(token: str) -> str:
    """Blacklist entry for a logged-out token."""
    return f"blacklist:{token}"
