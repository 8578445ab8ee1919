import logging
import time
from abc import ABC, abstractmethod
from fnmatch import fnmatchcase

from cachetools import TLRUCache
from redis.asyncio import Redis, RedisError

from todo_api.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class CacheLayer(ABC):
    """
    Key-value store of serialized payloads with per-entry TTL.

    Values are opaque strings. Pattern deletion is scan-then-delete and is
    not atomic: a key written after the scan survives it.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """Unconditionally store ``value`` under ``key`` for ``ttl`` seconds."""

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching the glob ``pattern``; return how many."""

    async def close(self) -> None:
        return None


class RedisCacheLayer(CacheLayer):
    """
    Redis-backed cache shared by every worker.

    Features:
    - One connection pool per process, created lazily by ``init_cache``
    - Automatic key namespacing
    - SCAN-based pattern deletion (never KEYS)

    Redis errors are logged and propagate to the caller.
    """

    def __init__(self, settings: Settings | None = None, redis: Redis | None = None):
        self._settings = settings
        self._redis = redis
        self._initialized = False

    async def init_cache(self):
        """Initialize settings and Redis connection."""
        if self._initialized:
            return

        if self._settings is None:
            self._settings = get_settings()

        settings = self._settings

        try:
            if self._redis is None:
                self._redis = Redis.from_url(
                    settings.redis_dsn,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=settings.redis_pool_size,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                    health_check_interval=30,
                )

            # Verify connection
            await self._redis.ping()
            logger.info("Redis connection established")
        except RedisError as e:
            logger.error(f"Redis initialization failed: {e}")
            raise

        self._initialized = True
        logger.info("Cache layer initialized")

    def _key(self, key: str) -> str:
        """Build namespaced cache key."""
        return f"{self._settings.cache_namespace}{key}"

    async def get(self, key: str) -> str | None:
        await self.init_cache()
        try:
            return await self._redis.get(self._key(key))
        except UnicodeDecodeError as e:
            # Not written by us; the caller falls through to the store
            logger.warning(f"Undecodable cache entry: {e}", extra={"key": key})
            return None
        except RedisError as e:
            logger.error(f"Redis GET error: {e}", extra={"key": key})
            raise

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.init_cache()
        try:
            await self._redis.set(self._key(key), value, ex=ttl)
            logger.debug("Stored in cache", extra={"key": key, "ttl": ttl})
        except RedisError as e:
            logger.error(f"Redis SET error: {e}", extra={"key": key})
            raise

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a pattern, one SCAN page at a time."""
        await self.init_cache()

        try:
            namespaced = self._key(pattern)
            cursor = 0
            deleted_count = 0

            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=namespaced, count=100
                )
                if keys:
                    deleted_count += await self._redis.delete(*keys)
                if cursor == 0:
                    break

            logger.info(
                "Pattern delete completed",
                extra={"pattern": pattern, "deleted": deleted_count},
            )
            return deleted_count

        except RedisError as e:
            logger.error(f"Pattern delete error: {e}", extra={"pattern": pattern})
            raise

    async def close(self):
        """Graceful shutdown of cache connections."""
        if self._redis:
            try:
                await self._redis.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis: {e}")
        self._initialized = False


class MemoryCacheLayer(CacheLayer):
    """
    Process-local cache for single-worker runs without Redis.

    Entries carry their own TTL; pattern deletion matches against the keys
    currently held.
    """

    def __init__(self, maxsize: int = 2048, timer=time.monotonic):
        self._entries = TLRUCache(
            maxsize=maxsize,
            ttu=lambda _key, entry, now: now + entry[1],
            timer=timer,
        )

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (value, ttl)

    async def delete_pattern(self, pattern: str) -> int:
        self._entries.expire()
        matched = [key for key in list(self._entries) if fnmatchcase(key, pattern)]
        for key in matched:
            self._entries.pop(key, None)
        logger.info(
            "Pattern delete completed",
            extra={"pattern": pattern, "deleted": len(matched)},
        )
        return len(matched)


def build_cache_layer(settings: Settings) -> CacheLayer:
    if settings.cache_backend == "memory":
        return MemoryCacheLayer(maxsize=settings.memory_cache_maxsize)
    return RedisCacheLayer(settings)
