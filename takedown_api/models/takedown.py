"""SQLAlchemy model for takedown requests."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class TakedownRequestModel(Base):
    """Stores copyright takedown claims and their lifecycle state."""

    __tablename__ = "takedown_requests"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    requester_contact: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    requester_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    requester_company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    target_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    target_link_id: Mapped[UUID | None] = mapped_column(Uuid, index=True, nullable=True)
    target_series_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    work_title: Mapped[str] = mapped_column(String(500), nullable=False)
    claim_details: Mapped[str] = mapped_column(String(5000), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    resolution_note: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
