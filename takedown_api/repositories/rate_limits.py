"""Fixed-window rate limit counter stores."""

from __future__ import annotations

import asyncio
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Tuple

import redis.asyncio as redis
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.rate_limits import RateLimitStatus
from ..models.rate_limit import RateLimitWindowModel


def _allowed(limit: int, count: int) -> RateLimitStatus:
    return RateLimitStatus(
        allowed=True,
        limit=limit,
        remaining=max(limit - count, 0),
        retry_after_seconds=0,
    )


def _denied(limit: int, retry_after: float) -> RateLimitStatus:
    return RateLimitStatus(
        allowed=False,
        limit=limit,
        remaining=0,
        retry_after_seconds=max(int(math.ceil(retry_after)), 0),
    )


class RateLimitRepository(ABC):
    """Interface describing operations for tracking request quotas."""

    @abstractmethod
    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        """Atomically count one request and return the resulting quota status."""

    async def close(self) -> None:
        return None


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimitRepository(RateLimitRepository):
    """Per-process counters guarded by a single asyncio lock.

    Counters live only in this process; every running instance keeps its own
    table, so the effective limit multiplies with the number of instances.
    Expired windows are swept every ``sweep_interval`` hits.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = 500,
    ) -> None:
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._windows: Dict[Tuple[str, str], _Window] = {}
        self._lock = asyncio.Lock()
        self._hits_since_sweep = 0

    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        async with self._lock:
            now = self._clock()
            self._hits_since_sweep += 1
            if self._hits_since_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            bucket_key = (scope, key)
            window = self._windows.get(bucket_key)
            if window is None or now > window.reset_at:
                self._windows[bucket_key] = _Window(count=1, reset_at=now + window_seconds)
                return _allowed(limit, 1)

            if window.count >= limit:
                return _denied(limit, window.reset_at - now)

            window.count += 1
            return _allowed(limit, window.count)

    async def sweep(self) -> int:
        """Drop expired windows and return how many were evicted."""

        async with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._hits_since_sweep = 0
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class SqlAlchemyRateLimitRepository(RateLimitRepository):
    """Persists rate limit counters to the shared database.

    Each branch is a single conditional UPDATE so two concurrent callers can
    never both observe "under limit" for the same slot.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        async with self._session_factory() as session:
            try:
                return await self._hit(session, scope, key, limit, window_seconds)
            except IntegrityError:
                # Another caller inserted the first counter row; count against it.
                await session.rollback()
                return await self._hit(session, scope, key, limit, window_seconds)

    async def _hit(
        self,
        session: AsyncSession,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        now = self._clock()
        window_start = now - timedelta(seconds=window_seconds)
        same_row = (
            RateLimitWindowModel.scope == scope,
            RateLimitWindowModel.actor_key == key,
        )

        incremented = await session.execute(
            update(RateLimitWindowModel)
            .where(
                *same_row,
                RateLimitWindowModel.window_started_at > window_start,
                RateLimitWindowModel.hits < limit,
            )
            .values(hits=RateLimitWindowModel.hits + 1)
            .execution_options(synchronize_session=False)
        )
        if incremented.rowcount:
            count = await session.scalar(
                select(RateLimitWindowModel.hits).where(*same_row)
            )
            await session.commit()
            return _allowed(limit, count or limit)

        restarted = await session.execute(
            update(RateLimitWindowModel)
            .where(*same_row, RateLimitWindowModel.window_started_at <= window_start)
            .values(hits=1, window_started_at=now)
            .execution_options(synchronize_session=False)
        )
        if restarted.rowcount:
            await session.commit()
            return _allowed(limit, 1)

        started_at = await session.scalar(
            select(RateLimitWindowModel.window_started_at).where(*same_row)
        )
        if started_at is None:
            session.add(
                RateLimitWindowModel(
                    scope=scope,
                    actor_key=key,
                    window_started_at=now,
                    hits=1,
                )
            )
            await session.commit()
            return _allowed(limit, 1)

        await session.rollback()
        elapsed = (now - started_at).total_seconds()
        return _denied(limit, window_seconds - elapsed)


class RedisRateLimitRepository(RateLimitRepository):
    """Shared fixed-window counters for deployments running several instances."""

    def __init__(self, client: redis.Redis, *, prefix: str = "ratelimit") -> None:
        self._redis = client
        self._prefix = prefix

    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        redis_key = f"{self._prefix}:{scope}:{key}"
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.expire(redis_key, window_seconds, nx=True)
        pipe.ttl(redis_key)
        count, _, ttl = await pipe.execute()

        if ttl is None or ttl < 0:
            await self._redis.expire(redis_key, window_seconds)
            ttl = window_seconds

        if count > limit:
            return _denied(limit, ttl)
        return _allowed(limit, count)

    async def close(self) -> None:
        await self._redis.aclose()
