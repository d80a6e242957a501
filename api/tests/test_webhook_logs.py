"""Tests for DeliveryLogStore."""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from app.webhooks.exceptions import (
    InvalidLogTransitionError,
    WebhookNotFoundError,
    WebhookValidationError,
)
from app.webhooks.logs import DeliveryLogStore
from app.webhooks.models import LogStatus, WebhookLog


@pytest_asyncio.fixture
async def record_log(session_factory):
    async def _record(endpoint_id, status=LogStatus.FAILED, event_type="purchase.completed"):
        async with session_factory() as session:
            return await DeliveryLogStore(session).record(
                endpoint_id=endpoint_id,
                event_type=event_type,
                payload='{"event":"%s"}' % event_type,
                status=status,
                http_status=200 if status is LogStatus.SUCCESS else 500,
                response_body=None,
                error_message=None if status is LogStatus.SUCCESS else "HTTP 500",
                duration_ms=7,
            )

    return _record


@pytest_asyncio.fixture
async def endpoint(create_endpoint):
    return await create_endpoint("https://hooks.example.com/a", ["purchase.completed"])


class TestArchive:
    @pytest.mark.asyncio
    async def test_archive_failed_entry(self, db_session, endpoint, record_log):
        entry = await record_log(endpoint.id)

        archived = await DeliveryLogStore(db_session).archive(entry.id)

        assert archived.status == LogStatus.ARCHIVED.value

    @pytest.mark.asyncio
    async def test_archive_is_idempotent(self, db_session, endpoint, record_log):
        entry = await record_log(endpoint.id, status=LogStatus.ARCHIVED)

        archived = await DeliveryLogStore(db_session).archive(entry.id)

        assert archived.status == LogStatus.ARCHIVED.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [LogStatus.SUCCESS, LogStatus.RETRIED])
    async def test_archive_rejects_other_states(self, db_session, endpoint, record_log, status):
        entry = await record_log(endpoint.id, status=status)

        with pytest.raises(InvalidLogTransitionError) as exc_info:
            await DeliveryLogStore(db_session).archive(entry.id)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_archive_missing_entry(self, db_session):
        with pytest.raises(WebhookNotFoundError):
            await DeliveryLogStore(db_session).archive(uuid.uuid4())


class TestList:
    @pytest.mark.asyncio
    async def test_filters(self, db_session, create_endpoint, endpoint, record_log):
        other = await create_endpoint("https://hooks.example.com/b", ["lead.captured"])
        await record_log(endpoint.id, LogStatus.SUCCESS)
        await record_log(endpoint.id, LogStatus.FAILED)
        await record_log(other.id, LogStatus.FAILED, event_type="lead.captured")
        store = DeliveryLogStore(db_session)

        assert len((await store.list()).items) == 3
        assert len((await store.list(endpoint_id=endpoint.id)).items) == 2
        assert len((await store.list(status="failed")).items) == 2
        assert len((await store.list(event_type="lead.captured")).items) == 1
        assert len((await store.list(endpoint_id=endpoint.id, status="failed")).items) == 1

    @pytest.mark.asyncio
    async def test_entries_carry_their_endpoint(self, db_session, endpoint, record_log):
        await record_log(endpoint.id)
        await record_log(None)

        page = await DeliveryLogStore(db_session).list()

        endpoints = {entry.endpoint.url if entry.endpoint else None for entry in page.items}
        assert endpoints == {endpoint.url, None}

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, db_session, endpoint, record_log):
        created = [await record_log(endpoint.id) for _ in range(3)]
        store = DeliveryLogStore(db_session)

        first = await store.list(limit=2)
        second = await store.list(cursor=first.next_cursor, limit=2)

        assert first.has_more is True
        assert second.has_more is False
        ids = [e.id for e in first.items + second.items]
        assert sorted(ids) == sorted(e.id for e in created)
        assert ids[0] == created[-1].id

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, db_session):
        with pytest.raises(WebhookValidationError):
            await DeliveryLogStore(db_session).list(status="pending")


class TestStatusConstraint:
    @pytest.mark.asyncio
    async def test_unknown_status_rejected_by_database(self, session_factory, endpoint):
        async with session_factory() as session:
            session.add(
                WebhookLog(
                    endpoint_id=endpoint.id,
                    event_type="purchase.completed",
                    payload="{}",
                    status="pending",
                    http_status=0,
                    duration_ms=0,
                )
            )
            with pytest.raises(IntegrityError):
                await session.commit()
