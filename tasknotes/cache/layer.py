import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

from redis.asyncio import RedisError

from tasknotes.cache.backends import (
    CacheBackend,
    MemoryBackend,
    RedisBackend,
    RedisMemoryGuard,
)
from tasknotes.cache.keys import CACHE_TTL_SECONDS
from tasknotes.core.config import Settings, get_settings

import logging

logger = logging.getLogger(__name__)


class CacheLayer:
    """
    Best-effort cache in front of the backing store.

    One backend is active at a time: Redis when configured and reachable,
    otherwise a process-local TTLCache. Every entry gets the same fixed TTL.

    Failure policy:
    - get: any backend or decoding failure is reported as a miss
    - set: any backend or encoding failure is logged and dropped
    - remove: any backend failure is logged and swallowed

    The store stays authoritative, so none of these reach the caller.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        settings: Settings | None = None,
        memory_guard: RedisMemoryGuard | None = None,
    ):
        self._settings = settings
        self._backend = backend
        self._memory_guard = memory_guard
        self.ttl = CACHE_TTL_SECONDS
        self._initialized = backend is not None
        self._init_lock = asyncio.Lock()

        # Stats tracking
        self.stats = {
            "hits": 0,
            "misses": 0,
            "errors": 0,
            "pressure_skips": 0,
        }

    @property
    def backend(self) -> CacheBackend | None:
        return self._backend

    async def init_cache(self):
        """Pick a backend: Redis if it answers a ping, memory otherwise."""
        if self._initialized:
            return

        # Concurrent first calls must not each open a Redis pool
        async with self._init_lock:
            if self._initialized:
                return
            await self._select_backend()

    async def _select_backend(self):
        if self._settings is None:
            self._settings = get_settings()

        settings = self._settings

        if settings.redis_dsn:
            redis_backend = RedisBackend.from_url(
                settings.redis_dsn, pool_size=settings.redis_pool_size
            )
            try:
                await redis_backend.ping()
                self._backend = redis_backend
                self._memory_guard = RedisMemoryGuard(redis_backend.redis)
                logger.info("Redis connection established")
            except RedisError as e:
                logger.error(f"Redis initialization failed: {e}")
                await redis_backend.close()

        if self._backend is None:
            # Degraded operation: single-process cache
            self._backend = MemoryBackend(maxsize=settings.l1_maxsize, ttl=self.ttl)
            logger.warning("Cache layer running in process-local mode")

        self._initialized = True
        logger.info(f"Cache layer initialized (backend={self._backend.name})")

    def _key(self, key: str) -> str:
        namespace = self._settings.cache_namespace if self._settings else ""
        return f"{namespace}{key}"

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _deserialize(self, raw: str) -> Any:
        return json.loads(raw)

    async def get(self, key: str) -> Any:
        """
        Return the cached value for ``key``, or None on a miss.

        Args:
            key: Cache key (namespaced automatically)

        Returns:
            The decoded value, or None if absent, expired or unreadable
        """
        await self.init_cache()

        try:
            raw = await self._backend.get(self._key(key))
        except RedisError as e:
            logger.error(f"Cache GET error for {key}: {e}")
            self.stats["errors"] += 1
            return None

        if raw is None:
            self.stats["misses"] += 1
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            value = self._deserialize(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            self.stats["errors"] += 1
            return None

        self.stats["hits"] += 1
        logger.debug(f"Cache hit: {key}")
        return value

    async def set(self, key: str, value: Any):
        """Store ``value`` under ``key`` for the fixed TTL."""
        await self.init_cache()

        try:
            data = self._serialize(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization failed for {key}: {e}")
            self.stats["errors"] += 1
            return

        if self._memory_guard and await self._memory_guard.is_critical():
            logger.debug(f"Skipping cache write due to pressure: {key}")
            self.stats["pressure_skips"] += 1
            return

        try:
            await self._backend.set(self._key(key), data, self.ttl)
            logger.debug(f"Stored {key} for {self.ttl}s")
        except RedisError as e:
            logger.error(f"Cache SET error for {key}: {e}")
            self.stats["errors"] += 1

    async def remove(self, key: str):
        """
        Delete a key.

        Never skipped under pressure: a missed delete is what lets stale
        data outlive a write.
        """
        await self.init_cache()

        try:
            await self._backend.delete(self._key(key))
            logger.debug(f"Removed {key}")
        except RedisError as e:
            logger.error(f"Cache DELETE error for {key}: {e}")
            self.stats["errors"] += 1

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        cache_empty: bool = True,
    ) -> Optional[Any]:
        """
        Cache-aside read: return the cached value, or call ``loader`` and
        cache its result.

        None is never cached. Empty collections are cached only when
        ``cache_empty`` is set. There is no per-key lock, so concurrent
        misses each hit the store.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await loader()
        if value is None:
            return None
        if not value and not cache_empty:
            return value

        await self.set(key, value)
        return value

    async def close(self):
        """Graceful shutdown of cache connections."""
        if self._backend:
            try:
                await self._backend.close()
                logger.info(f"Cache backend closed ({self._backend.name})")
            except RedisError as e:
                logger.error(f"Error closing cache backend: {e}")
        self._backend = None
        self._memory_guard = None
        self._initialized = False

    def get_stats(self) -> dict:
        """Get cache statistics including memory pressure."""
        total = self.stats["hits"] + self.stats["misses"]

        stats = {
            **self.stats,
            "backend": self._backend.name if self._backend else None,
            "ttl_seconds": self.ttl,
            "hit_rate": self.stats["hits"] / total if total > 0 else 0,
        }

        if self._memory_guard and self._memory_guard._cached:
            stats["redis_pressure"] = self._memory_guard._cached

        return stats


# Cache layer instance (singleton per worker)
cache_layer = CacheLayer()


def get_cache() -> CacheLayer:
    return cache_layer
