"""
Cache management using Redis
Provides JSON caching with a no-op fallback when Redis is unavailable
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError, RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Redis cache manager with automatic fallback

    Every operation degrades to a miss (or a no-op) while disconnected, so
    callers never need to know whether Redis is configured.
    """

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self.connected = False

    async def connect(self) -> bool:
        """Connect to Redis when REDIS_URL is configured"""
        if not settings.get_redis_url():
            logger.info("Redis caching is disabled")
            return False

        if self.connected:
            return True

        try:
            self.redis_client = redis.from_url(
                settings.get_redis_url(), encoding="utf-8", decode_responses=True
            )
            await self.redis_client.ping()
            self.connected = True
            logger.info("Connected to Redis successfully")
        except (RedisError, ConnectionError, OSError) as e:
            logger.warning(f"Redis connection failed: {e}. Running without cache.")
            self.connected = False

        return self.connected

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis_client:
            await self.redis_client.close()
            self.connected = False
            logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        """Get a JSON value from cache, None on miss or when unavailable"""
        if not self.connected:
            return None

        try:
            value = await self.redis_client.get(key)
        except (RedisError, ConnectionError) as e:
            logger.error(f"Redis get error for key {key}: {e}")
            self.connected = False
            return None

        if value is None:
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        """Store a JSON-serializable value"""
        if not self.connected:
            return False

        try:
            await self.redis_client.setex(key, expire or settings.CACHE_TTL, json.dumps(value))
            return True
        except (RedisError, ConnectionError) as e:
            logger.error(f"Redis set error for key {key}: {e}")
            self.connected = False
            return False

    async def clear_pattern(self, pattern: str) -> int:
        """
        Clear all keys matching pattern

        Args:
            pattern: Key pattern (e.g., "colleges:*")

        Returns:
            Number of keys deleted
        """
        if not self.connected:
            return 0

        try:
            keys = [key async for key in self.redis_client.scan_iter(match=pattern)]
            if keys:
                return await self.redis_client.delete(*keys)
            return 0
        except (RedisError, ConnectionError) as e:
            logger.error(f"Redis clear pattern error for pattern {pattern}: {e}")
            self.connected = False
            return 0

    async def ping(self) -> bool:
        if not self.connected:
            return False
        try:
            return bool(await self.redis_client.ping())
        except (RedisError, ConnectionError):
            return False


# Global cache instance
cache_manager = CacheManager()


def cache_key(*args, **kwargs) -> str:
    """Generate cache key from arguments"""
    parts = [str(arg) for arg in args]
    parts.extend([f"{k}:{v}" for k, v in sorted(kwargs.items())])
    return ":".join(parts)
