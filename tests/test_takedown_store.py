"""
Tests for the takedown request store (in-memory and SQLAlchemy backings).

Property: status only moves forward, repeating the current status is a
no-op, and contact matching on lookup is exact.
"""

import asyncio
from uuid import uuid4

import pytest

from takedown_api.domain.errors import InvalidStatusTransition
from takedown_api.domain.takedowns import TakedownRequestStatus, TakedownSubmission
from takedown_api.repositories.takedowns import (
    InMemoryTakedownRequestsRepository,
    SqlAlchemyTakedownRequestsRepository,
)


@pytest.fixture(params=["memory", "sqlalchemy"])
def run_with_store(request, session_factory):
    """Run a coroutine function against each store implementation."""

    def run(scenario):
        async def wrapped():
            if request.param == "memory":
                return await scenario(InMemoryTakedownRequestsRepository())
            async with session_factory() as session:
                return await scenario(SqlAlchemyTakedownRequestsRepository(session))

        return asyncio.run(wrapped())

    return run


@pytest.fixture
def submission(valid_payload):
    return TakedownSubmission.model_validate(valid_payload)


def test_create_starts_pending_with_timestamps(run_with_store, submission):
    link_id, series_id = uuid4(), uuid4()

    async def scenario(store):
        created = await store.create(
            submission, target_link_id=link_id, target_series_id=series_id
        )
        fetched = await store.get(created.id)
        return created, fetched

    created, fetched = run_with_store(scenario)
    assert created.status == TakedownRequestStatus.PENDING
    assert created.created_at is not None
    assert created.resolved_at is None
    assert created.target_link_id == link_id
    assert created.target_series_id == series_id
    assert fetched is not None
    assert fetched.id == created.id
    assert fetched.requester_contact == "a@x.com"
    assert fetched.target_url == "https://Example.com/ch/1/"


def test_advance_to_processing_is_idempotent(run_with_store, submission):
    async def scenario(store):
        created = await store.create(submission)
        first = await store.advance_status(created.id, TakedownRequestStatus.PROCESSING)
        second = await store.advance_status(created.id, TakedownRequestStatus.PROCESSING)
        return first, second

    first, second = run_with_store(scenario)
    assert first.status == TakedownRequestStatus.PROCESSING
    assert second.status == TakedownRequestStatus.PROCESSING
    assert second.updated_at == first.updated_at
    assert first.resolved_at is None


def test_terminal_status_stamps_resolution(run_with_store, submission):
    async def scenario(store):
        created = await store.create(submission)
        await store.advance_status(created.id, TakedownRequestStatus.PROCESSING)
        return await store.advance_status(
            created.id,
            TakedownRequestStatus.RESOLVED,
            resolution_note="Link removed; claimant notified.",
        )

    resolved = run_with_store(scenario)
    assert resolved.status == TakedownRequestStatus.RESOLVED
    assert resolved.resolved_at is not None
    assert resolved.resolution_note == "Link removed; claimant notified."


@pytest.mark.parametrize(
    ("path", "backwards"),
    [
        ([TakedownRequestStatus.PROCESSING], TakedownRequestStatus.PENDING),
        ([TakedownRequestStatus.REJECTED], TakedownRequestStatus.PROCESSING),
        ([TakedownRequestStatus.RESOLVED], TakedownRequestStatus.REJECTED),
    ],
)
def test_backwards_moves_are_refused(run_with_store, submission, path, backwards):
    async def scenario(store):
        created = await store.create(submission)
        for status in path:
            await store.advance_status(created.id, status)
        with pytest.raises(InvalidStatusTransition):
            await store.advance_status(created.id, backwards)
        return await store.get(created.id)

    unchanged = run_with_store(scenario)
    assert unchanged.status == path[-1]


def test_advance_unknown_request_returns_none(run_with_store):
    async def scenario(store):
        return await store.advance_status(uuid4(), TakedownRequestStatus.PROCESSING)

    assert run_with_store(scenario) is None


def test_contact_match_is_exact(run_with_store, submission):
    async def scenario(store):
        created = await store.create(submission)
        return (
            await store.find_by_id_and_contact(created.id, "a@x.com"),
            await store.find_by_id_and_contact(created.id, "A@X.com"),
            await store.find_by_id_and_contact(created.id, " a@x.com"),
            await store.find_by_id_and_contact(uuid4(), "a@x.com"),
        )

    exact, upper, padded, unknown = run_with_store(scenario)
    assert exact is not None
    assert upper is None
    assert padded is None
    assert unknown is None
