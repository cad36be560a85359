"""
Storage backends behind the cache layer.

A backend stores already-serialized strings under a key with a TTL. Backends
may raise; ``CacheLayer`` decides what a failure means.
"""

import time
from typing import Callable, Optional, Protocol

from cachetools import TTLCache
from redis.asyncio import Redis, RedisError

import logging

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    name: str

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, data: str, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...


class RedisBackend:
    """Shared cache reachable by every worker."""

    name = "redis"

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_url(cls, dsn: str, pool_size: int = 5) -> "RedisBackend":
        return cls(
            Redis.from_url(
                dsn,
                encoding="utf-8",
                decode_responses=True,
                max_connections=pool_size,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
        )

    async def ping(self) -> None:
        await self.redis.ping()

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, data: str, ttl: int) -> None:
        await self.redis.set(key, data, ex=ttl)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def close(self) -> None:
        await self.redis.aclose()


class MemoryBackend:
    """
    Process-local fallback used when no Redis is configured or reachable.

    TTLCache applies one TTL to every entry, which matches the fixed-TTL
    contract. ``timer`` is injectable so expiry can be driven by a fake clock.
    """

    name = "memory"

    def __init__(self, maxsize: int, ttl: int, timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.store = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, data: str, ttl: int) -> None:
        if ttl != self.ttl:
            logger.warning(f"Memory backend ignores ttl={ttl}, using {self.ttl}")
        self.store[key] = data

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)

    async def close(self) -> None:
        self.store.clear()

    def __len__(self) -> int:
        return len(self.store)


class RedisMemoryGuard:
    """
    Monitors Redis memory usage and signals when writes should be skipped.

    Pressure levels are 0-10 (tenths of maxmemory). Level 9 and above is
    critical: the cache layer stops populating Redis until pressure drops.
    Reads and deletes are never skipped.
    """

    CRITICAL_LEVEL = 9

    def __init__(self, redis: Redis, refresh_interval: int = 5, timer=time.monotonic):
        self.redis = redis
        self.refresh_interval = refresh_interval
        self.timer = timer
        self._last_check = 0.0
        self._cached = None

    async def check(self) -> dict:
        """Check memory pressure, reusing the last answer to avoid INFO spam."""
        now = self.timer()

        if self._cached and (now - self._last_check) < self.refresh_interval:
            return self._cached

        try:
            info = await self.redis.info("memory")
            used = info["used_memory"]
            maxm = info.get("maxmemory", 0)

            if maxm == 0:
                # No memory limit configured
                result = {
                    "level": 0,
                    "ratio": None,
                    "policy": info.get("maxmemory_policy", "noeviction"),
                    "used_mb": used / (1024 * 1024),
                }
            else:
                ratio = used / maxm
                result = {
                    "level": int(min(ratio * 10, 10)),
                    "ratio": ratio,
                    "policy": info.get("maxmemory_policy", "noeviction"),
                    "used_mb": used / (1024 * 1024),
                    "max_mb": maxm / (1024 * 1024),
                }

                if result["level"] >= self.CRITICAL_LEVEL:
                    logger.warning(
                        f"Redis memory critical: level={result['level']} "
                        f"ratio={ratio:.1%} policy={result['policy']}"
                    )

            self._cached = result
            self._last_check = now
            return result

        except RedisError as e:
            logger.error(f"Memory check failed: {e}")
            return {"level": 0, "ratio": None, "policy": "unknown", "error": str(e)}

    async def is_critical(self) -> bool:
        pressure = await self.check()
        return pressure["level"] >= self.CRITICAL_LEVEL
