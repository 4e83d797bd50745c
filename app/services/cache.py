"""Redis-backed TTL cache for JSON-serializable query results.

Cache failures are logged and treated as misses so a Redis outage never
fails a request.
"""

import json
import logging
from typing import Any, Optional
import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def create_redis(url: str) -> redis.Redis:
    """Build a pooled Redis client for ``url``."""
    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


class CacheService:
    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    async def get(self, key: str) -> Optional[Any]:
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning("Cache get failed for %s: %s", key, e)
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if self.client is None:
            return
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except RedisError as e:
            logger.warning("Cache set failed for %s: %s", key, e)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob ``pattern``. Returns the count removed."""
        if self.client is None:
            return 0
        deleted = 0
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                deleted = await self.client.delete(*keys)
        except RedisError as e:
            logger.warning("Cache invalidation failed for %s: %s", pattern, e)
            return 0
        logger.debug("Invalidated %d cache keys matching %s", deleted, pattern)
        return deleted

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
