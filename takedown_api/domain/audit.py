from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

ACTOR_IP_MAX_LENGTH = 64


class LinkAuditAction(str, Enum):
    DMCA_REMOVE = "dmca_remove"


class LinkAuditEntryCreate(BaseModel):
    """Payload describing an auditable change to a catalog link."""

    link_id: UUID
    action: LinkAuditAction
    actor_ip: Optional[str] = Field(
        default=None,
        max_length=ACTOR_IP_MAX_LENGTH,
        description="Network address of the actor that triggered the change",
    )
    payload: dict[str, Any] | None = Field(
        default=None,
        description="Structured context kept for accountability and disputes",
    )

    @field_validator("actor_ip", mode="before")
    @classmethod
    def _fit_actor_column(cls, value: Any) -> Any:
        # An oversized address must never abort the removal it describes.
        if isinstance(value, str):
            return value[:ACTOR_IP_MAX_LENGTH]
        return value


class LinkAuditEntry(BaseModel):
    """Persisted, append-only audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    link_id: UUID
    action: str
    actor_ip: str | None = None
    payload: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
