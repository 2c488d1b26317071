import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from blogsphere.config import settings

logger = logging.getLogger(__name__)

LATEST_PREFIX = "blogs:latest"
TRENDING_KEY = "blogs:trending"

# Session.info flag: this transaction changed what the feeds show.
FEEDS_STALE = "feeds_stale"


class CacheManager:
    """
    Cache-aside manager backed by Redis, used for the public blog feeds.

    Every public method tolerates Redis being absent or failing: reads
    report a miss and writes are skipped, so requests fall through to the
    database instead of erroring.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        self._redis = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url or settings.REDIS_URL)
        except RedisError as exc:
            logger.warning("Redis unavailable, feed cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except RedisError as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except RedisError as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[dict | list]],
        ttl: int | None = None,
    ) -> dict | list:
        """Return the cached value for *key*, running *loader* and storing its result on a miss."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value, ttl=ttl)
        return value

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except RedisError as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Feed invalidation
    # ------------------------------------------------------------------

    async def invalidate_feeds(self) -> None:
        """Drop the latest and trending feeds after a blog is written."""
        await self.delete_pattern(f"{LATEST_PREFIX}:*")
        await self.delete_pattern(TRENDING_KEY)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()


def mark_feeds_stale(session) -> None:
    """Schedule feed invalidation for when *session* commits."""
    session.info[FEEDS_STALE] = True


async def invalidate_if_stale(session) -> None:
    """Invalidate the feeds if the transaction just committed marked them stale."""
    if session.info.pop(FEEDS_STALE, False):
        await cache.invalidate_feeds()
