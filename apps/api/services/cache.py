import json
import time
import fnmatch
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from redis import asyncio as aioredis

logger = logging.getLogger("artshare.cache")

KEY_PREFIX = "art_share:"

# Cache keys and TTLs used by the routes
PUBLIC_PORTFOLIOS_PATTERN = "portfolios:public:*"
PUBLIC_PORTFOLIOS_TTL = 300


def public_portfolios_key(page: int, limit: int) -> str:
    return f"portfolios:public:{page}:{limit}"


class MediaCache:
    """
    JSON cache backed by Redis when REDIS_URL is configured.

    Falls back to a process-local dict with expiry timestamps when Redis is
    not configured or a Redis call fails, so callers never see cache errors.
    """

    DEFAULT_TTL = 300

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url
        self.redis = None
        self._memory: Dict[str, Tuple[float, str]] = {}
        if not redis_url:
            logger.info("REDIS_URL not set, using in-memory cache")

    async def connect(self):
        if not self.redis_url:
            return
        if not self.redis:
            try:
                self.redis = aioredis.from_url(self.redis_url, socket_timeout=2.0)
            except Exception as e:
                logger.error(f"Failed to connect to Redis: {e}")
                self.redis = None

    def _key(self, key: str) -> str:
        return f"{KEY_PREFIX}{key}"

    def _memory_get(self, key: str) -> Optional[str]:
        entry = self._memory.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at <= time.monotonic():
            del self._memory[key]
            return None
        return raw

    async def get(self, key: str) -> Optional[Any]:
        full_key = self._key(key)
        raw = None
        try:
            await self.connect()
            if self.redis:
                raw = await self.redis.get(full_key)
            else:
                raw = self._memory_get(full_key)
        except Exception as e:
            logger.warning(f"Redis get failed: {e}")
            raw = self._memory_get(full_key)

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    async def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL):
        full_key = self._key(key)
        raw = json.dumps(value, default=str)
        try:
            await self.connect()
            if self.redis:
                await self.redis.setex(full_key, ttl, raw)
                return
        except Exception as e:
            logger.warning(f"Redis set failed: {e}")
        self._memory[full_key] = (time.monotonic() + ttl, raw)

    async def delete(self, key: str):
        full_key = self._key(key)
        self._memory.pop(full_key, None)
        try:
            await self.connect()
            if self.redis:
                await self.redis.delete(full_key)
        except Exception as e:
            logger.warning(f"Redis delete failed: {e}")

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; returns the number removed"""
        full_pattern = self._key(pattern)
        stale = [k for k in self._memory if fnmatch.fnmatchcase(k, full_pattern)]
        for k in stale:
            del self._memory[k]
        removed = len(stale)

        try:
            await self.connect()
            if self.redis:
                keys = [k async for k in self.redis.scan_iter(match=full_pattern)]
                if keys:
                    removed += await self.redis.delete(*keys)
        except Exception as e:
            logger.warning(f"Redis delete_pattern failed: {e}")
        return removed

    async def get_or_set(self, key: str, fetcher: Callable[[], Awaitable[Any]], ttl: int = DEFAULT_TTL) -> Any:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await fetcher()
        if value is not None:
            await self.set(key, value, ttl)
        return value

    async def stats(self) -> dict:
        if self.redis_url:
            try:
                await self.connect()
                if self.redis:
                    await self.redis.ping()
                    return {"backend": "redis", "connected": True}
            except Exception as e:
                logger.warning(f"Redis ping failed: {e}")
            return {"backend": "redis", "connected": False, "memory_keys": len(self._memory)}
        return {"backend": "memory", "connected": True, "memory_keys": len(self._memory)}
