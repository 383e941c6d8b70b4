from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import InvalidStatusTransition
from ..domain.takedowns import TakedownRequest, TakedownRequestStatus, TakedownSubmission
from ..models.takedown import TakedownRequestModel


class TakedownRequestsRepository(Protocol):
    async def create(
        self,
        payload: TakedownSubmission,
        *,
        target_link_id: UUID | None = None,
        target_series_id: UUID | None = None,
    ) -> TakedownRequest: ...

    async def get(self, request_id: UUID) -> TakedownRequest | None: ...

    async def advance_status(
        self,
        request_id: UUID,
        status: TakedownRequestStatus,
        *,
        resolution_note: str | None = None,
    ) -> TakedownRequest | None: ...

    async def find_by_id_and_contact(
        self, request_id: UUID, contact: str
    ) -> TakedownRequest | None: ...


def _check_transition(
    current: TakedownRequestStatus, requested: TakedownRequestStatus
) -> bool:
    """Return True when the write changes state; a repeat of the current status is a no-op."""

    if not current.can_advance_to(requested):
        raise InvalidStatusTransition(current, requested)
    return current != requested


def _submission_fields(payload: TakedownSubmission) -> dict[str, object]:
    return payload.model_dump(
        include={
            "requester_contact",
            "requester_name",
            "requester_company",
            "target_url",
            "work_title",
            "claim_details",
        }
    )


class InMemoryTakedownRequestsRepository:
    """Ephemeral claim store used in tests and single-process development."""

    def __init__(self) -> None:
        self._requests: dict[UUID, TakedownRequest] = {}

    async def create(
        self,
        payload: TakedownSubmission,
        *,
        target_link_id: UUID | None = None,
        target_series_id: UUID | None = None,
    ) -> TakedownRequest:
        request = TakedownRequest(
            **_submission_fields(payload),
            target_link_id=target_link_id,
            target_series_id=target_series_id,
            status=TakedownRequestStatus.PENDING,
        )
        self._requests[request.id] = request
        return request

    async def get(self, request_id: UUID) -> TakedownRequest | None:
        return self._requests.get(request_id)

    async def advance_status(
        self,
        request_id: UUID,
        status: TakedownRequestStatus,
        *,
        resolution_note: str | None = None,
    ) -> TakedownRequest | None:
        request = self._requests.get(request_id)
        if request is None:
            return None
        if not _check_transition(request.status, status):
            return request
        now = datetime.utcnow()
        update: dict[str, object] = {"status": status, "updated_at": now}
        if status.is_terminal:
            update["resolved_at"] = request.resolved_at or now
        if resolution_note is not None:
            update["resolution_note"] = resolution_note
        updated = request.model_copy(update=update)
        self._requests[request_id] = updated
        return updated

    async def find_by_id_and_contact(
        self, request_id: UUID, contact: str
    ) -> TakedownRequest | None:
        request = self._requests.get(request_id)
        if request is None or request.requester_contact != contact:
            return None
        return request


class SqlAlchemyTakedownRequestsRepository(TakedownRequestsRepository):
    """Postgres-backed takedown request store."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        payload: TakedownSubmission,
        *,
        target_link_id: UUID | None = None,
        target_series_id: UUID | None = None,
    ) -> TakedownRequest:
        now = datetime.utcnow()
        model = TakedownRequestModel(
            **_submission_fields(payload),
            target_link_id=target_link_id,
            target_series_id=target_series_id,
            status=TakedownRequestStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._session.flush()
        request = TakedownRequest.model_validate(model)
        await self._session.commit()
        return request

    async def get(self, request_id: UUID) -> TakedownRequest | None:
        model = await self._session.get(TakedownRequestModel, request_id)
        if model is None:
            return None
        return TakedownRequest.model_validate(model)

    async def advance_status(
        self,
        request_id: UUID,
        status: TakedownRequestStatus,
        *,
        resolution_note: str | None = None,
    ) -> TakedownRequest | None:
        result = await self._session.execute(
            select(TakedownRequestModel)
            .where(TakedownRequestModel.id == request_id)
            .with_for_update()
        )
        model = result.scalar_one_or_none()
        if model is None:
            await self._session.rollback()
            return None
        current = TakedownRequestStatus(model.status)
        try:
            changed = _check_transition(current, status)
        except InvalidStatusTransition:
            await self._session.rollback()
            raise
        if not changed:
            request = TakedownRequest.model_validate(model)
            await self._session.rollback()
            return request
        now = datetime.utcnow()
        model.status = status.value
        model.updated_at = now
        if status.is_terminal:
            model.resolved_at = model.resolved_at or now
        if resolution_note is not None:
            model.resolution_note = resolution_note
        await self._session.flush()
        request = TakedownRequest.model_validate(model)
        await self._session.commit()
        return request

    async def find_by_id_and_contact(
        self, request_id: UUID, contact: str
    ) -> TakedownRequest | None:
        # Exact match on the stored contact: no case folding or trimming.
        result = await self._session.execute(
            select(TakedownRequestModel).where(
                TakedownRequestModel.id == request_id,
                TakedownRequestModel.requester_contact == contact,
            )
        )
        model = result.scalar_one_or_none()
        if not model:
            return None
        return TakedownRequest.model_validate(model)
