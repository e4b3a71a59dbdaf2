"""RecordStoreSQLA 테스트 (AsyncSession Mock)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from insect_jobs.application.common.exceptions import RecordStoreError
from insect_jobs.infrastructure.persistence_postgres import RecordStoreSQLA

CREATED = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def store(session):
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    return RecordStoreSQLA(factory)


def _row(record_id: uuid.UUID, **data):
    return {
        "id": record_id,
        "collection": "insects",
        "data": data,
        "created_at": CREATED,
        "updated_at": CREATED,
    }


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert_drops_none_and_commits(self, store, session):
        record_id = await store.insert("insects", {"name": "Ladybird", "user_id": None})

        uuid.UUID(record_id)
        session.commit.assert_awaited_once()
        stmt = session.execute.await_args.args[0]
        params = stmt.compile().params
        assert params["collection"] == "insects"
        assert params["data"] == {"name": "Ladybird"}

    @pytest.mark.asyncio
    async def test_db_error_is_record_store_error(self, store, session):
        session.execute.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(RecordStoreError) as exc_info:
            await store.insert("insects", {"name": "Ladybird"})

        assert exc_info.value.message == "Failed to access identification records"
        assert "down" in exc_info.value.reason
        assert "down" not in exc_info.value.message


class TestGet:
    @pytest.mark.asyncio
    async def test_invalid_id_is_none(self, store, session):
        assert await store.get("insects", "not-a-uuid") is None
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_document_includes_id_and_timestamps(self, store, session):
        record_id = uuid.uuid4()
        result = MagicMock()
        result.mappings.return_value.first.return_value = _row(record_id, name="Ladybird")
        session.execute.return_value = result

        document = await store.get("insects", str(record_id))

        assert document == {
            "name": "Ladybird",
            "id": str(record_id),
            "created_at": CREATED.isoformat(),
            "updated_at": CREATED.isoformat(),
        }

    @pytest.mark.asyncio
    async def test_missing_is_none(self, store, session):
        result = MagicMock()
        result.mappings.return_value.first.return_value = None
        session.execute.return_value = result

        assert await store.get("insects", str(uuid.uuid4())) is None


class TestFind:
    @pytest.mark.asyncio
    async def test_returns_documents(self, store, session):
        first, second = uuid.uuid4(), uuid.uuid4()
        result = MagicMock()
        result.mappings.return_value.all.return_value = [
            _row(first, user_id="user-1", detected_at="2026-01-02T00:00:00+00:00"),
            _row(second, user_id="user-1", detected_at="2026-01-01T00:00:00+00:00"),
        ]
        session.execute.return_value = result

        documents = await store.find("insects", "user_id", "user-1", order_by="detected_at")

        assert [d["id"] for d in documents] == [str(first), str(second)]

    @pytest.mark.asyncio
    async def test_db_error_is_record_store_error(self, store, session):
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(RecordStoreError):
            await store.find("insects", "user_id", "user-1")
