from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(AnyHttpUrl)


class TakedownRequestStatus(str, Enum):
    """Tracks the lifecycle of a takedown claim."""

    PENDING = "pending"
    PROCESSING = "processing"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (TakedownRequestStatus.RESOLVED, TakedownRequestStatus.REJECTED)

    def can_advance_to(self, target: TakedownRequestStatus) -> bool:
        """Forward moves only; terminal states never change once reached."""

        if self.is_terminal:
            return target == self
        return target.rank >= self.rank


_STATUS_RANK = {
    TakedownRequestStatus.PENDING: 0,
    TakedownRequestStatus.PROCESSING: 1,
    TakedownRequestStatus.RESOLVED: 2,
    TakedownRequestStatus.REJECTED: 2,
}


class TakedownSubmission(BaseModel):
    """Claimant-supplied takedown notice after validation."""

    requester_contact: str
    requester_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    requester_company: Optional[str] = Field(default=None, max_length=200)
    target_url: Optional[str] = Field(default=None, max_length=2048)
    target_link_id: Optional[UUID] = None
    work_title: str = Field(..., min_length=1, max_length=500)
    claim_details: str = Field(..., min_length=20, max_length=5000)
    good_faith_statement: StrictBool
    accuracy_statement: StrictBool

    @field_validator("requester_contact")
    @classmethod
    def _contact_is_email(cls, value: str) -> str:
        # Validate only; the stored contact keeps the claimant's exact spelling.
        try:
            _email_adapter.validate_python(value)
        except ValidationError as exc:
            raise PydanticCustomError(
                "email_invalid", "Valid email address required"
            ) from exc
        return value

    @field_validator("target_url")
    @classmethod
    def _target_is_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            _url_adapter.validate_python(value)
        except ValidationError as exc:
            raise PydanticCustomError("url_invalid", "Invalid url") from exc
        return value

    @field_validator("good_faith_statement")
    @classmethod
    def _good_faith_confirmed(cls, value: bool) -> bool:
        if value is not True:
            raise PydanticCustomError(
                "statement_required", "You must confirm good faith belief"
            )
        return value

    @field_validator("accuracy_statement")
    @classmethod
    def _accuracy_confirmed(cls, value: bool) -> bool:
        if value is not True:
            raise PydanticCustomError(
                "statement_required",
                "You must confirm the accuracy of your information",
            )
        return value


class TakedownRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    requester_contact: str
    requester_name: str | None = None
    requester_company: str | None = None
    target_url: str | None = None
    target_link_id: UUID | None = None
    target_series_id: UUID | None = None
    work_title: str
    claim_details: str
    status: TakedownRequestStatus = TakedownRequestStatus.PENDING
    resolution_note: str | None = Field(
        default=None,
        max_length=2000,
        description="Outcome explanation recorded when the claim is closed",
    )
    resolved_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TakedownPublicView(BaseModel):
    """Subset of a claim that may be shown back to its submitter."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: TakedownRequestStatus
    work_title: str
    target_url: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    resolution_note: str | None = None


class TakedownSubmitResponse(BaseModel):
    success: bool = True
    message: str
    request_id: UUID
    link_removed: bool

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "message": "DMCA request received and link has been removed pending review.",
                    "request_id": "6f1c2b9e-3a0d-4a4e-9d2f-1b7c5e8a9f10",
                    "link_removed": True,
                }
            ]
        }
    }


class TakedownStatusResponse(BaseModel):
    request: TakedownPublicView
