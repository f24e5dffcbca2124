from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis

from core.config import RedisConfig


class CacheBackend(Protocol):
    async def incr(self, key: str, ttl: int | None = None) -> int: ...
    async def delete(self, key: str) -> None: ...
    async def close(self) -> None: ...


@dataclass(slots=True)
class _Counter:
    value: int
    expires_at: float | None


class MemoryCache(CacheBackend):
    """Process-local counters; enough for a single bot instance."""

    def __init__(self) -> None:
        self._store: dict[str, _Counter] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _is_expired(entry: _Counter) -> bool:
        if entry.expires_at is None:
            return False
        return time.time() >= entry.expires_at

    async def incr(self, key: str, ttl: int | None = None) -> int:
        async with self._lock:
            entry = self._store.get(key)
            if not entry or self._is_expired(entry):
                expires_at = time.time() + ttl if ttl else None
                self._store[key] = _Counter(value=1, expires_at=expires_at)
                return 1
            entry.value += 1
            return entry.value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)

    async def close(self) -> None:
        self._store.clear()


class RedisCache(CacheBackend):
    def __init__(self, url: str) -> None:
        self._client = redis.from_url(url, decode_responses=True)

    async def incr(self, key: str, ttl: int | None = None) -> int:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            if ttl:
                # NX keeps the window fixed to the first hit (Redis >= 7.0).
                pipe.expire(key, ttl, nx=True)
            result = await pipe.execute()
        return int(result[0])

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


def build_cache(config: RedisConfig) -> CacheBackend:
    if config.enabled:
        return RedisCache(config.url)
    return MemoryCache()
