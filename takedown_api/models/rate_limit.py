"""Shared fixed-window counters for the database rate limit backend."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class RateLimitWindowModel(Base):
    """One row per (scope, actor): when the current window opened and how many hits it has seen."""

    __tablename__ = "rate_limits"
    __table_args__ = (
        UniqueConstraint("scope", "actor_key", name="uq_rate_limits_scope_actor"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_key: Mapped[str] = mapped_column(String(255), nullable=False)
    window_started_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
