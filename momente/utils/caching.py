from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import json
import time

import redis.asyncio as aioredis

from momente.core.config import settings
from momente.utils.logging import get_logger

logger = get_logger()


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float  # seconds

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at <= self.ttl


class CacheBackend(ABC):
    """Key/value store with per-entry TTL.

    Reads never evict: ``get`` only answers fresh entries, ``get_stale``
    answers whatever is stored. Entries disappear through ``delete`` or
    ``clear`` only.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None: ...

    @abstractmethod
    async def get_entry(self, key: str) -> Optional[CacheEntry]: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...

    async def get(self, key: str) -> Optional[Any]:
        entry = await self.get_entry(key)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.value

    async def get_stale(self, key: str) -> Optional[Any]:
        entry = await self.get_entry(key)
        return entry.value if entry else None

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def has_any(self, key: str) -> bool:
        return await self.get_entry(key) is not None

    async def close(self) -> None:
        return None


class MemoryCache(CacheBackend):
    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._store: Dict[str, CacheEntry] = {}

    async def set(self, key: str, value: Any, ttl: float) -> None:
        self._store[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)
        logger.debug(f"Cached {key} for {ttl / 60:g} minutes")

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._store.get(key)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def clear(self) -> None:
        self._store.clear()


class RedisCache(CacheBackend):
    """Entries are stored without a Redis expiry so stale values stay readable."""

    def __init__(
        self,
        client: aioredis.Redis,
        prefix: str = "momente:",
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(clock)
        self._redis = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def set(self, key: str, value: Any, ttl: float) -> None:
        payload = {"value": value, "stored_at": self._clock(), "ttl": ttl}
        await self._redis.set(self._key(key), json.dumps(payload))
        logger.debug(f"Cached {key} in redis for {ttl / 60:g} minutes")

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        raw = await self._redis.get(self._key(key))
        if not raw:
            return None
        payload = json.loads(raw)
        return CacheEntry(
            value=payload["value"],
            stored_at=payload["stored_at"],
            ttl=payload["ttl"],
        )

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def clear(self) -> None:
        keys = [key async for key in self._redis.scan_iter(match=f"{self.prefix}*")]
        if keys:
            await self._redis.delete(*keys)

    async def close(self) -> None:
        await self._redis.aclose()


def create_cache(
    cache_type: str = "inmemory",
    redis_url: Optional[str] = None,
    prefix: str = "momente:",
) -> CacheBackend:
    cache_type = cache_type.lower()
    if cache_type == "redis":
        if redis_url:
            return RedisCache(aioredis.from_url(redis_url), prefix=prefix)
        logger.warning("CACHE_TYPE=redis without REDIS_URL, using in-memory cache")
    elif cache_type != "inmemory":
        logger.warning(f"Unknown CACHE_TYPE '{cache_type}', using in-memory cache")
    return MemoryCache()


cache = create_cache(settings.CACHE_TYPE, settings.REDIS_URL, settings.CACHE_PREFIX)
