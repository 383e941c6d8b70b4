"""Takedown submission pipeline and submitter status lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..domain.errors import (
    InvalidStatusTransition,
    RateLimitExceeded,
    SubmissionInvalid,
    TargetNotFound,
)
from ..domain.links import select_target
from ..domain.takedowns import TakedownPublicView, TakedownRequest, TakedownRequestStatus
from ..repositories.takedowns import TakedownRequestsRepository
from ..telemetry import TAKEDOWN_SUBMISSIONS
from .link_resolver import LinkResolver
from .rate_limiter import RateLimiter
from .removal import RemovalOutcome, RemovalTransaction
from .validation import InvalidSubmission, validate_submission

logger = structlog.get_logger(__name__)

REMOVED_MESSAGE = "DMCA request received and link has been removed pending review."
RECEIVED_MESSAGE = "DMCA request received. Our team will review and take appropriate action."


@dataclass(frozen=True)
class SubmissionOutcome:
    request: TakedownRequest
    link_removed: bool
    removal: RemovalOutcome | None = None

    @property
    def message(self) -> str:
        return REMOVED_MESSAGE if self.link_removed else RECEIVED_MESSAGE


class TakedownService:
    """Runs a claim through admission, validation, resolution, storage and removal."""

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        requests: TakedownRequestsRepository,
        resolver: LinkResolver,
        removal: RemovalTransaction,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._requests = requests
        self._resolver = resolver
        self._removal = removal

    async def submit(self, body: Any, *, actor_ip: str) -> SubmissionOutcome:
        """Process one submission.

        Raises ``RateLimitExceeded`` or ``SubmissionInvalid`` before anything
        is stored. Once the claim exists, a failed removal surfaces as
        ``TransactionFailure`` and leaves the claim ``pending``.
        """

        log = logger.bind(actor=actor_ip)

        admission = await self._rate_limiter.admit(actor_ip)
        if not admission.allowed:
            TAKEDOWN_SUBMISSIONS.labels(outcome="rate_limited").inc()
            raise RateLimitExceeded(admission)

        result = validate_submission(body)
        if isinstance(result, InvalidSubmission):
            TAKEDOWN_SUBMISSIONS.labels(outcome="invalid").inc()
            raise SubmissionInvalid(result.field_errors)
        data = result.data

        link = await self._resolver.resolve(select_target(data.target_link_id, data.target_url))
        request = await self._requests.create(
            data,
            target_link_id=data.target_link_id or (link.id if link else None),
            target_series_id=link.series_id if link else None,
        )
        log = log.bind(request_id=str(request.id))
        log.info("takedown.submitted", target_link_id=str(link.id) if link else None)

        if link is None:
            TAKEDOWN_SUBMISSIONS.labels(outcome="pending").inc()
            return SubmissionOutcome(request=request, link_removed=False)

        try:
            removal = await self._removal.execute(
                link_id=link.id, request=request, actor_ip=actor_ip
            )
        except TargetNotFound:
            log.warning("takedown.target_vanished", link_id=str(link.id))
            TAKEDOWN_SUBMISSIONS.labels(outcome="pending").inc()
            return SubmissionOutcome(request=request, link_removed=False)

        try:
            advanced = await self._requests.advance_status(
                request.id, TakedownRequestStatus.PROCESSING
            )
        except Exception as exc:
            # The removal is committed and cannot be undone; the claim stays
            # pending until the repair job reconciles it.
            log.error(
                "takedown.status_advance_failed",
                stage="advance_status",
                link_id=str(link.id),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=not isinstance(exc, (SQLAlchemyError, InvalidStatusTransition)),
            )
            advanced = None

        TAKEDOWN_SUBMISSIONS.labels(outcome="removed").inc()
        return SubmissionOutcome(
            request=advanced or request,
            link_removed=True,
            removal=removal,
        )

    async def lookup(self, request_id: str | UUID, contact: str) -> TakedownPublicView | None:
        """Return the public view only when id and contact both match.

        Unknown ids, malformed ids and contact mismatches all return ``None``.
        """

        if not isinstance(request_id, UUID):
            try:
                request_id = UUID(str(request_id))
            except ValueError:
                return None
        request = await self._requests.find_by_id_and_contact(request_id, contact)
        if request is None:
            return None
        return TakedownPublicView.model_validate(request.model_dump())
