"""
Tests for fixed-window submission rate limiting.

Property: within one window exactly ``limit`` hits per key are admitted and
the next is denied; once the window elapses the counter starts over.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from hypothesis import given, settings, strategies as st

from takedown_api.repositories.rate_limits import (
    InMemoryRateLimitRepository,
    RedisRateLimitRepository,
    SqlAlchemyRateLimitRepository,
)
from takedown_api.services.rate_limiter import SUBMIT_SCOPE, RateLimiter


def make_limiter(repository, *, limit=5, window_seconds=3600) -> RateLimiter:
    return RateLimiter(repository, scope=SUBMIT_SCOPE, limit=limit, window_seconds=window_seconds)


async def admit_many(limiter: RateLimiter, key: str, count: int) -> list[bool]:
    return [(await limiter.admit(key)).allowed for _ in range(count)]


@settings(max_examples=50)
@given(limit=st.integers(min_value=1, max_value=20))
def test_in_memory_admits_exactly_limit_per_window(limit: int):
    limiter = make_limiter(InMemoryRateLimitRepository(), limit=limit)

    results = asyncio.run(admit_many(limiter, "203.0.113.7", limit + 1))

    assert results == [True] * limit + [False]


def test_in_memory_window_reset_resumes_admission(clock):
    limiter = make_limiter(InMemoryRateLimitRepository(clock=clock), limit=2, window_seconds=60)

    async def scenario():
        assert await admit_many(limiter, "10.0.0.1", 3) == [True, True, False]
        denied = await limiter.admit("10.0.0.1")
        assert denied.retry_after_seconds == 60
        clock.advance(30)
        assert not (await limiter.admit("10.0.0.1")).allowed
        clock.advance(31)
        status = await limiter.admit("10.0.0.1")
        assert status.allowed
        assert status.remaining == 1

    asyncio.run(scenario())


def test_in_memory_keys_are_independent(clock):
    limiter = make_limiter(InMemoryRateLimitRepository(clock=clock), limit=1)

    async def scenario():
        assert (await limiter.admit("10.0.0.1")).allowed
        assert not (await limiter.admit("10.0.0.1")).allowed
        assert (await limiter.admit("10.0.0.2")).allowed

    asyncio.run(scenario())


def test_in_memory_concurrent_hits_never_exceed_limit(clock):
    limiter = make_limiter(InMemoryRateLimitRepository(clock=clock), limit=5)

    async def scenario():
        return await asyncio.gather(*(limiter.admit("10.0.0.9") for _ in range(40)))

    statuses = asyncio.run(scenario())
    assert sum(1 for status in statuses if status.allowed) == 5


def test_in_memory_sweep_evicts_expired_windows(clock):
    repository = InMemoryRateLimitRepository(clock=clock, sweep_interval=1_000)
    limiter = make_limiter(repository, window_seconds=10)

    async def scenario():
        for index in range(3):
            await limiter.admit(f"10.0.0.{index}")
        assert len(repository) == 3
        clock.advance(11)
        await limiter.admit("10.0.1.1")
        assert await repository.sweep() == 3
        assert len(repository) == 1

    asyncio.run(scenario())


def test_in_memory_sweeps_automatically_every_interval(clock):
    repository = InMemoryRateLimitRepository(clock=clock, sweep_interval=2)
    limiter = make_limiter(repository, window_seconds=10)

    async def scenario():
        await limiter.admit("stale")
        clock.advance(11)
        await limiter.admit("fresh")

    asyncio.run(scenario())
    assert len(repository) == 1


def test_database_limiter_counts_and_resets(session_factory):
    now = [datetime(2026, 1, 1, 12, 0, 0)]
    repository = SqlAlchemyRateLimitRepository(session_factory, clock=lambda: now[0])
    limiter = make_limiter(repository, limit=3, window_seconds=3600)

    async def scenario():
        assert await admit_many(limiter, "198.51.100.4", 4) == [True, True, True, False]
        denied = await limiter.admit("198.51.100.4")
        assert denied.retry_after_seconds == 3600
        now[0] += timedelta(minutes=45)
        denied = await limiter.admit("198.51.100.4")
        assert denied.retry_after_seconds == 15 * 60
        now[0] += timedelta(minutes=16)
        status = await limiter.admit("198.51.100.4")
        assert status.allowed
        assert status.remaining == 2

    asyncio.run(scenario())


def test_database_limiter_reports_remaining(session_factory):
    repository = SqlAlchemyRateLimitRepository(session_factory)
    limiter = make_limiter(repository, limit=3)

    async def scenario():
        return [(await limiter.admit("198.51.100.5")).remaining for _ in range(3)]

    assert asyncio.run(scenario()) == [2, 1, 0]


def _redis_with(results):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=results)
    client = MagicMock()
    client.pipeline.return_value = pipe
    client.expire = AsyncMock()
    client.aclose = AsyncMock()
    return client, pipe


def test_redis_limiter_admits_under_limit():
    client, pipe = _redis_with([2, True, 3599])
    limiter = make_limiter(RedisRateLimitRepository(client), limit=5)

    status = asyncio.run(limiter.admit("192.0.2.1"))

    assert status.allowed
    assert status.remaining == 3
    client.pipeline.assert_called_once_with(transaction=True)
    pipe.incr.assert_called_once_with(f"ratelimit:{SUBMIT_SCOPE}:192.0.2.1")
    pipe.expire.assert_called_once_with(f"ratelimit:{SUBMIT_SCOPE}:192.0.2.1", 3600, nx=True)


def test_redis_limiter_denies_over_limit_with_ttl_hint():
    client, _ = _redis_with([6, False, 1200])
    limiter = make_limiter(RedisRateLimitRepository(client), limit=5)

    status = asyncio.run(limiter.admit("192.0.2.1"))

    assert not status.allowed
    assert status.retry_after_seconds == 1200


def test_redis_limiter_repairs_missing_expiry():
    client, _ = _redis_with([1, False, -1])
    repository = RedisRateLimitRepository(client)
    limiter = make_limiter(repository, limit=5, window_seconds=60)

    status = asyncio.run(limiter.admit("192.0.2.1"))

    assert status.allowed
    client.expire.assert_awaited_once_with(f"ratelimit:{SUBMIT_SCOPE}:192.0.2.1", 60)
    asyncio.run(limiter.close())
    client.aclose.assert_awaited_once()
