"""Safe harbor removal: soft-delete a link and audit it in one transaction."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..db.unit_of_work import UnitOfWork
from ..domain.audit import LinkAuditAction, LinkAuditEntryCreate
from ..domain.errors import TargetNotFound, TransactionFailure
from ..domain.takedowns import TakedownRequest

logger = structlog.get_logger(__name__)

REMOVAL_REASON = "DMCA takedown request"


class RemovalOutcome(str, Enum):
    REMOVED = "removed"
    ALREADY_REMOVED = "already_removed"


class RemovalTransaction:
    """Marks a link removed and appends its ``dmca_remove`` audit entry atomically.

    Either both writes commit or neither does. A link that is already removed
    is left untouched and gets no second audit entry.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def execute(
        self,
        *,
        link_id: UUID,
        request: TakedownRequest,
        actor_ip: str,
    ) -> RemovalOutcome:
        try:
            async with self._uow_factory() as uow:
                link = await uow.links.get(link_id, for_update=True)
                if link is None:
                    raise TargetNotFound(link_id)
                if link.is_removed:
                    logger.info(
                        "takedown.link_already_removed",
                        link_id=str(link_id),
                        request_id=str(request.id),
                    )
                    return RemovalOutcome.ALREADY_REMOVED

                await uow.links.mark_removed(link_id, deleted_at=self._clock())
                await uow.audit.append(
                    LinkAuditEntryCreate(
                        link_id=link_id,
                        action=LinkAuditAction.DMCA_REMOVE,
                        actor_ip=actor_ip,
                        payload={
                            "dmca_request_id": str(request.id),
                            "requester_contact": request.requester_contact,
                            "work_title": request.work_title,
                            "reason": REMOVAL_REASON,
                        },
                    )
                )
                await uow.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "takedown.removal_failed",
                link_id=str(link_id),
                request_id=str(request.id),
                actor=actor_ip,
                error=str(exc),
            )
            raise TransactionFailure("Link removal was rolled back") from exc

        logger.info(
            "takedown.link_removed",
            link_id=str(link_id),
            request_id=str(request.id),
            actor=actor_ip,
        )
        return RemovalOutcome.REMOVED
