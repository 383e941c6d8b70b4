"""Transactional unit pairing the link catalog with the audit log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..repositories.audit import LinkAuditRepository, SqlAlchemyLinkAuditRepository
from ..repositories.links import LinkCatalogRepository, SqlAlchemyLinkCatalogRepository


class UnitOfWork(ABC):
    """All-or-nothing scope over the catalog and audit repositories.

    Work staged through ``links`` and ``audit`` only becomes visible after
    ``commit``. Leaving the context without committing, or with an exception,
    rolls everything back.
    """

    links: LinkCatalogRepository
    audit: LinkAuditRepository

    @abstractmethod
    async def begin(self) -> None:
        """Open the underlying transaction."""

    @abstractmethod
    async def commit(self) -> None:
        """Persist every staged change."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every staged change."""

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> UnitOfWork:
        await self.begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None or not self.committed:
                await self.rollback()
        finally:
            await self.close()

    @property
    @abstractmethod
    def committed(self) -> bool: ...


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Runs catalog and audit writes on one session inside one transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        links_factory: Callable[[AsyncSession], LinkCatalogRepository] = SqlAlchemyLinkCatalogRepository,
        audit_factory: Callable[[AsyncSession], LinkAuditRepository] = SqlAlchemyLinkAuditRepository,
    ) -> None:
        self._session_factory = session_factory
        self._links_factory = links_factory
        self._audit_factory = audit_factory
        self._session: AsyncSession | None = None
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    async def begin(self) -> None:
        if self._session is not None:
            raise RuntimeError("Unit of work already started")
        self._session = self._session_factory()
        self._committed = False
        await self._session.begin()
        self.links = self._links_factory(self._session)
        self.audit = self._audit_factory(self._session)

    async def commit(self) -> None:
        await self._require_session().commit()
        self._committed = True

    async def rollback(self) -> None:
        if self._session is None:
            return
        await self._session.rollback()

    async def close(self) -> None:
        if self._session is None:
            return
        await self._session.close()
        self._session = None

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work has not been started")
        return self._session


UnitOfWorkFactory = Callable[[], UnitOfWork]
