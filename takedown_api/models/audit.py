"""SQLAlchemy model for the append-only link audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class LinkAuditEntryModel(Base):
    """Records state-changing actions taken against a catalog link."""

    __tablename__ = "link_submission_audits"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    link_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("chapter_links.id"), index=True, nullable=False
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
