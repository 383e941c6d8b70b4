from __future__ import annotations

import structlog

from ..domain.links import Link, LinkIdTarget, LinkTarget, LinkUrlTarget
from ..repositories.links import LinkCatalogRepository
from .urls import normalize_url

logger = structlog.get_logger(__name__)


class LinkResolver:
    """Finds the catalog link a takedown claim points at."""

    def __init__(self, links: LinkCatalogRepository) -> None:
        self._links = links

    async def resolve(self, target: LinkTarget | None) -> Link | None:
        if target is None:
            return None
        if isinstance(target, LinkIdTarget):
            link = await self._links.get(target.link_id)
        elif isinstance(target, LinkUrlTarget):
            link = await self._links.find_by_normalized_url(normalize_url(target.url))
        else:  # pragma: no cover - exhaustive over LinkTarget
            raise TypeError(f"Unsupported link target: {target!r}")

        logger.debug(
            "takedown.target_resolved",
            kind=target.kind,
            link_id=str(link.id) if link else None,
        )
        return link
