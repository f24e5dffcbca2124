from __future__ import annotations

import asyncio

import pytest

from services.cache import MemoryCache, RedisCache
from utils.rate_limit import AttemptLimiter


@pytest.mark.asyncio
async def test_rate_limiter_blocks_after_limit() -> None:
    cache = MemoryCache()
    limiter = AttemptLimiter(cache)

    result1 = await limiter.hit("k1", limit=2, window_seconds=1)
    result2 = await limiter.hit("k1", limit=2, window_seconds=1)
    result3 = await limiter.hit("k1", limit=2, window_seconds=1)

    assert result1.allowed is True
    assert result2.allowed is True
    assert result2.remaining == 0
    assert result3.allowed is False


@pytest.mark.asyncio
async def test_rate_limiter_resets_after_window() -> None:
    cache = MemoryCache()
    limiter = AttemptLimiter(cache)

    result1 = await limiter.hit("k2", limit=1, window_seconds=1)
    assert result1.allowed is True

    await asyncio.sleep(1.1)
    result2 = await limiter.hit("k2", limit=1, window_seconds=1)
    assert result2.allowed is True


@pytest.mark.asyncio
async def test_rate_limiter_reset_clears_counter() -> None:
    limiter = AttemptLimiter(MemoryCache())

    await limiter.hit("k3", limit=1, window_seconds=60)
    blocked = await limiter.hit("k3", limit=1, window_seconds=60)
    assert blocked.allowed is False

    await limiter.reset("k3")
    result = await limiter.hit("k3", limit=1, window_seconds=60)
    assert result.allowed is True
    assert result.current == 1


class _RecordingPipeline:
    def __init__(self, calls: list[tuple]) -> None:
        self.calls = calls

    async def __aenter__(self) -> _RecordingPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    def incr(self, key: str) -> None:
        self.calls.append(("incr", key))

    def expire(self, key: str, ttl: int, nx: bool = False) -> None:
        self.calls.append(("expire", key, ttl, nx))

    async def execute(self) -> list[object]:
        return [3, False]


class _RecordingRedis:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.transactions: list[bool] = []

    def pipeline(self, transaction: bool = True) -> _RecordingPipeline:
        self.transactions.append(transaction)
        return _RecordingPipeline(self.calls)


@pytest.mark.asyncio
async def test_redis_counter_sets_expiry_in_same_transaction() -> None:
    cache = RedisCache("redis://localhost:6379/0")
    fake = _RecordingRedis()
    cache._client = fake  # type: ignore[assignment]

    value = await cache.incr("login:attempts:1", ttl=300)

    assert value == 3
    assert fake.transactions == [True]
    assert fake.calls == [("incr", "login:attempts:1"), ("expire", "login:attempts:1", 300, True)]
