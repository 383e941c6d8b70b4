from __future__ import annotations

import redis.asyncio as redis
import structlog

from ..core.config import Settings, get_settings
from ..db import get_sessionmaker
from ..domain.rate_limits import RateLimitStatus
from ..repositories.rate_limits import (
    InMemoryRateLimitRepository,
    RateLimitRepository,
    RedisRateLimitRepository,
    SqlAlchemyRateLimitRepository,
)

logger = structlog.get_logger(__name__)

SUBMIT_SCOPE = "takedown:submit"


class RateLimiterConfigurationError(RuntimeError):
    """Raised when the selected rate limit backend cannot be built."""


class RateLimiter:
    """Admission control for one scope, owned by the application.

    The repository decides where counters live; ``admit`` behaves the same
    for every backing store.
    """

    def __init__(
        self,
        repository: RateLimitRepository,
        *,
        scope: str,
        limit: int,
        window_seconds: int,
    ) -> None:
        self._repository = repository
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    async def admit(self, key: str) -> RateLimitStatus:
        status = await self._repository.hit(
            scope=self.scope,
            key=key,
            limit=self.limit,
            window_seconds=self.window_seconds,
        )
        if not status.allowed:
            logger.info(
                "takedown.rate_limited",
                scope=self.scope,
                actor=key,
                retry_after=status.retry_after_seconds,
            )
        return status

    async def close(self) -> None:
        await self._repository.close()


def build_rate_limiter(settings: Settings | None = None) -> RateLimiter:
    """Create the submission limiter for the configured backend."""

    settings = settings or get_settings()
    backend = settings.rate_limit_backend
    repository: RateLimitRepository
    if backend == "redis":
        if not settings.redis_url:
            raise RateLimiterConfigurationError("REDIS_URL is required for the redis rate limit backend")
        repository = RedisRateLimitRepository(
            redis.from_url(settings.redis_url, decode_responses=True)
        )
    elif backend == "database":
        repository = SqlAlchemyRateLimitRepository(get_sessionmaker())
    else:
        logger.warning(
            "takedown.rate_limiter.process_local",
            detail="Counters are per process; run one instance or use the redis backend",
        )
        repository = InMemoryRateLimitRepository(
            sweep_interval=settings.rate_limit_sweep_interval
        )

    return RateLimiter(
        repository,
        scope=SUBMIT_SCOPE,
        limit=settings.takedown_rate_limit,
        window_seconds=settings.takedown_rate_limit_window_seconds,
    )
