from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class LinkStatus(str, Enum):
    """Catalog link states this service reads or writes."""

    ACTIVE = "active"
    REMOVED = "removed"


class Link(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    series_id: UUID
    url: str
    url_normalized: str
    status: str
    submitted_by: UUID | None = None
    deleted_at: datetime | None = None

    @property
    def is_removed(self) -> bool:
        return self.status == LinkStatus.REMOVED.value


class LinkIdTarget(BaseModel):
    """Target named directly by catalog id."""

    kind: Literal["id"] = "id"
    link_id: UUID


class LinkUrlTarget(BaseModel):
    """Target named by the URL the claimant saw."""

    kind: Literal["url"] = "url"
    url: str


LinkTarget = Union[LinkIdTarget, LinkUrlTarget]


def select_target(
    target_link_id: UUID | None, target_url: str | None
) -> LinkTarget | None:
    """Collapse the two optional selectors into one target.

    An explicit id always wins; the URL is ignored when both are given.
    """

    if target_link_id is not None:
        return LinkIdTarget(link_id=target_link_id)
    if target_url:
        return LinkUrlTarget(url=target_url)
    return None
