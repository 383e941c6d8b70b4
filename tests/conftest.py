"""Pytest configuration and fixtures for takedown API tests."""

import asyncio
from datetime import datetime
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from takedown_api.core.config import get_settings
from takedown_api.db import init_db, session as session_module
from takedown_api.domain.links import Link
from takedown_api.models.link import LinkModel
from takedown_api.repositories.rate_limits import InMemoryRateLimitRepository
from takedown_api.services.rate_limiter import SUBMIT_SCOPE, RateLimiter
from takedown_api.services.urls import normalize_url


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FailingAuditRepository:
    """Audit log whose writes always fail, as on a full disk."""

    def __init__(self, session) -> None:
        self._session = session

    async def append(self, payload):
        raise OperationalError("INSERT INTO link_submission_audits", {}, Exception("disk full"))

    async def list_for_link(self, link_id, *, action=None):
        return []


@pytest.fixture
def failing_audit_repository():
    return FailingAuditRepository


@pytest.fixture
def database_url(tmp_path):
    """File-backed SQLite database so separate sessions see committed data."""
    return f"sqlite+aiosqlite:///{tmp_path / 'takedowns.db'}"


@pytest.fixture
def db_engine(database_url):
    engine = create_async_engine(database_url, poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def link_factory(session_factory):
    """Insert catalog links synchronously and return them as domain objects."""

    def create(
        url: str,
        *,
        link_id: UUID | None = None,
        status: str = "active",
        deleted: bool = False,
    ) -> Link:
        async def insert() -> Link:
            async with session_factory() as session:
                model = LinkModel(
                    id=link_id or uuid4(),
                    series_id=uuid4(),
                    url=url,
                    url_normalized=normalize_url(url),
                    status=status,
                )
                if deleted:
                    model.deleted_at = datetime.utcnow()
                session.add(model)
                await session.flush()
                link = Link.model_validate(model)
                await session.commit()
                return link

        return asyncio.run(insert())

    return create


@pytest.fixture
def valid_payload():
    return {
        "requester_contact": "a@x.com",
        "requester_name": "Rights Holder",
        "work_title": "Book",
        "claim_details": "This chapter is copied verbatim from my published novel.",
        "target_url": "https://Example.com/ch/1/",
        "good_faith_statement": True,
        "accuracy_statement": True,
    }


@pytest.fixture
def api_client(database_url, db_engine, monkeypatch):
    """TestClient wired to the per-test SQLite database and a fresh in-memory limiter."""
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENABLE_PROMETHEUS_METRICS", "false")
    monkeypatch.setenv("LOG_JSON", "false")
    get_settings.cache_clear()
    monkeypatch.setattr(session_module, "_engine", None)
    monkeypatch.setattr(session_module, "_session_factory", None)

    from takedown_api.main import create_app

    limiter = RateLimiter(
        InMemoryRateLimitRepository(),
        scope=SUBMIT_SCOPE,
        limit=5,
        window_seconds=3600,
    )
    app = create_app(rate_limiter=limiter)
    with TestClient(app) as client:
        yield client
    get_settings.cache_clear()
