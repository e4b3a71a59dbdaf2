"""Record Store SQLAlchemy Adapter.

RecordStorePort의 PostgreSQL 구현체.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from insect_jobs.application.common.exceptions import RecordStoreError
from insect_jobs.application.ports.record_store import RecordStorePort
from insect_jobs.infrastructure.persistence_postgres.tables import records_table

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = ("created_at", "updated_at")


class RecordStoreSQLA(RecordStorePort):
    """Record Store SQLAlchemy 구현체.

    요청 스코프가 없는 Worker에서도 쓰이므로 연산마다 세션을 연다.
    """

    def __init__(self, session_factory: "async_sessionmaker[AsyncSession]") -> None:
        self._session_factory = session_factory

    async def insert(self, collection: str, fields: dict[str, Any]) -> str:
        record_id = uuid.uuid4()
        stmt = pg_insert(records_table).values(
            id=record_id,
            collection=collection,
            data={k: v for k, v in fields.items() if v is not None},
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                "record_insert_failed",
                extra={"collection": collection, "error": str(e)},
            )
            raise RecordStoreError(str(e)) from e

        return str(record_id)

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        try:
            key = uuid.UUID(record_id)
        except ValueError:
            return None

        stmt = select(records_table).where(
            records_table.c.id == key,
            records_table.c.collection == collection,
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).mappings().first()
        except SQLAlchemyError as e:
            raise RecordStoreError(str(e)) from e

        return _to_document(row) if row else None

    async def find(
        self,
        collection: str,
        field: str,
        value: str,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        if order_by in TIMESTAMP_COLUMNS:
            order_column = records_table.c[order_by]
        else:
            order_column = records_table.c.data[order_by].astext

        stmt = (
            select(records_table)
            .where(
                records_table.c.collection == collection,
                records_table.c.data[field].astext == value,
            )
            .order_by(order_column.desc() if descending else order_column.asc())
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).mappings().all()
        except SQLAlchemyError as e:
            raise RecordStoreError(str(e)) from e

        return [_to_document(row) for row in rows]


def _to_document(row: Any) -> dict[str, Any]:
    document = dict(row["data"])
    document["id"] = str(row["id"])
    for column in TIMESTAMP_COLUMNS:
        document[column] = _isoformat(row[column])
    return document


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
