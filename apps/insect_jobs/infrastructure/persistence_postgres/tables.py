"""Record Store 테이블 정의.

컬렉션 단위 문서(JSONB)를 하나의 테이블에 저장한다.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, MetaData, Table, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

metadata = MetaData()

records_table = Table(
    "records",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True),
    Column("collection", Text, nullable=False),
    Column("data", JSONB, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    Index("ix_records_collection_created_at", "collection", "created_at"),
)
