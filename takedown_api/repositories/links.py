from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.links import Link, LinkStatus
from ..models.link import LinkModel


class LinkCatalogRepository(Protocol):
    async def get(self, link_id: UUID, *, for_update: bool = False) -> Link | None: ...

    async def find_by_normalized_url(self, url_normalized: str) -> Link | None: ...

    async def mark_removed(self, link_id: UUID, *, deleted_at: datetime) -> Link | None: ...


class SqlAlchemyLinkCatalogRepository(LinkCatalogRepository):
    """Read/soft-delete access to the catalog's link table.

    Writes are flushed but never committed here; the surrounding unit of work
    owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, link_id: UUID, *, for_update: bool = False) -> Link | None:
        model = await self._load(link_id, for_update=for_update)
        if model is None:
            return None
        return Link.model_validate(model)

    async def find_by_normalized_url(self, url_normalized: str) -> Link | None:
        # url_normalized is not unique in the catalog; lowest id keeps the pick stable.
        result = await self._session.execute(
            select(LinkModel)
            .where(
                LinkModel.url_normalized == url_normalized,
                LinkModel.deleted_at.is_(None),
            )
            .order_by(LinkModel.id.asc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return Link.model_validate(model)

    async def mark_removed(self, link_id: UUID, *, deleted_at: datetime) -> Link | None:
        model = await self._load(link_id, for_update=True)
        if model is None:
            return None
        model.status = LinkStatus.REMOVED.value
        model.deleted_at = deleted_at
        await self._session.flush()
        return Link.model_validate(model)

    async def _load(self, link_id: UUID, *, for_update: bool) -> LinkModel | None:
        query = select(LinkModel).where(LinkModel.id == link_id)
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        return result.scalar_one_or_none()
