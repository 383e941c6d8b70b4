from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.audit import LinkAuditEntry, LinkAuditEntryCreate
from ..models.audit import LinkAuditEntryModel


class LinkAuditRepository(Protocol):
    async def append(self, payload: LinkAuditEntryCreate) -> LinkAuditEntry:
        ...

    async def list_for_link(
        self,
        link_id: UUID,
        *,
        action: str | None = None,
    ) -> list[LinkAuditEntry]:
        ...


class SqlAlchemyLinkAuditRepository(LinkAuditRepository):
    """Append-only audit log stored next to the link catalog.

    Entries are flushed into the caller's transaction and committed by the
    unit of work; there is no update or delete path.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, payload: LinkAuditEntryCreate) -> LinkAuditEntry:
        model = LinkAuditEntryModel(
            link_id=payload.link_id,
            action=payload.action.value,
            actor_ip=payload.actor_ip,
            payload=payload.payload,
        )
        self._session.add(model)
        await self._session.flush()
        return LinkAuditEntry.model_validate(model)

    async def list_for_link(
        self,
        link_id: UUID,
        *,
        action: str | None = None,
    ) -> list[LinkAuditEntry]:
        query = select(LinkAuditEntryModel).where(LinkAuditEntryModel.link_id == link_id)
        if action is not None:
            query = query.where(LinkAuditEntryModel.action == action)
        query = query.order_by(LinkAuditEntryModel.created_at.asc())
        result = await self._session.execute(query)
        return [LinkAuditEntry.model_validate(row) for row in result.scalars().all()]
