from __future__ import annotations

import ipaddress

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..db import SqlAlchemyUnitOfWork, get_session, get_sessionmaker
from ..db.unit_of_work import UnitOfWorkFactory
from ..domain.audit import ACTOR_IP_MAX_LENGTH
from ..repositories.links import LinkCatalogRepository, SqlAlchemyLinkCatalogRepository
from ..repositories.takedowns import (
    SqlAlchemyTakedownRequestsRepository,
    TakedownRequestsRepository,
)
from ..services.link_resolver import LinkResolver
from ..services.rate_limiter import RateLimiter
from ..services.removal import RemovalTransaction
from ..services.takedowns import TakedownService

UNKNOWN_CLIENT = "unknown"


def _parse_ip(value: str | None) -> str | None:
    if not value:
        return None
    try:
        address = str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None
    # IPv6 zone ids are unbounded.
    return address if len(address) <= ACTOR_IP_MAX_LENGTH else None


def resolve_client_ip(request: Request) -> str:
    """Network address of the caller, preferring proxy headers when trusted.

    Header values are client-controlled, so only entries that parse as an IP
    address are used; anything else falls through to the socket peer.
    """

    if get_settings().trust_forwarded_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        address = _parse_ip(forwarded.split(",")[0]) if forwarded else None
        if address is None:
            address = _parse_ip(request.headers.get("X-Real-IP"))
        if address is not None:
            return address
    if request.client and request.client.host:
        return request.client.host[:ACTOR_IP_MAX_LENGTH]
    return UNKNOWN_CLIENT


async def get_client_ip(request: Request) -> str:
    return resolve_client_ip(request)


async def get_rate_limiter(request: Request) -> RateLimiter:
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiter is not configured",
        )
    return limiter


async def get_takedown_requests_repository(
    session: AsyncSession = Depends(get_session),
) -> TakedownRequestsRepository:
    return SqlAlchemyTakedownRequestsRepository(session)


async def get_link_catalog_repository(
    session: AsyncSession = Depends(get_session),
) -> LinkCatalogRepository:
    return SqlAlchemyLinkCatalogRepository(session)


async def get_unit_of_work_factory() -> UnitOfWorkFactory:
    session_factory = get_sessionmaker()
    return lambda: SqlAlchemyUnitOfWork(session_factory)


async def get_takedown_service(
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    requests_repo: TakedownRequestsRepository = Depends(get_takedown_requests_repository),
    links_repo: LinkCatalogRepository = Depends(get_link_catalog_repository),
    uow_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
) -> TakedownService:
    return TakedownService(
        rate_limiter=rate_limiter,
        requests=requests_repo,
        resolver=LinkResolver(links_repo),
        removal=RemovalTransaction(uow_factory),
    )
