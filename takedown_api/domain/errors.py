"""Error taxonomy for the takedown pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from .rate_limits import RateLimitStatus
    from .takedowns import TakedownRequestStatus


class TakedownError(Exception):
    """Base class for failures raised by the takedown pipeline."""


class SubmissionInvalid(TakedownError):
    """User-correctable problems with a submission, keyed by field."""

    def __init__(self, field_errors: dict[str, list[str]]) -> None:
        super().__init__("Submission failed validation")
        self.field_errors = field_errors


class RateLimitExceeded(TakedownError):
    def __init__(self, status: RateLimitStatus) -> None:
        super().__init__("Rate limit exceeded")
        self.status = status


class TargetNotFound(TakedownError):
    """The link disappeared between resolution and removal."""

    def __init__(self, link_id: UUID) -> None:
        super().__init__(f"Link {link_id} not found")
        self.link_id = link_id


class TransactionFailure(TakedownError):
    """The removal unit could not commit and was rolled back."""


class InvalidStatusTransition(TakedownError):
    def __init__(
        self,
        current: TakedownRequestStatus,
        requested: TakedownRequestStatus,
    ) -> None:
        super().__init__(
            f"Cannot move takedown request from {current.value} to {requested.value}"
        )
        self.current = current
        self.requested = requested
