"""Get History Query - 사용자 식별 이력 조회."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from insect_jobs.application.ports import RecordStorePort

logger = logging.getLogger(__name__)

INSECTS_COLLECTION = "insects"


@dataclass
class InsectHistoryItem:
    """이력 항목 DTO."""

    id: str
    name: str
    scientific_name: str
    description: str
    image_url: str
    confidence: float | None
    detected_at: str | None
    created_at: str | None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> InsectHistoryItem:
        return cls(
            id=record["id"],
            name=record.get("name", ""),
            scientific_name=record.get("scientific_name", ""),
            description=record.get("description") or "",
            image_url=record.get("image_url") or "",
            confidence=record.get("confidence"),
            detected_at=record.get("detected_at"),
            created_at=record.get("created_at"),
        )


class GetHistoryQuery:
    """사용자 이력 조회 Query.

    insects 컬렉션에서 user_id가 일치하는 기록을 detected_at 내림차순으로 반환.
    """

    def __init__(self, records: RecordStorePort, limit: int = 100):
        self._records = records
        self._limit = limit

    async def execute(self, user_id: str) -> list[InsectHistoryItem]:
        records = await self._records.find(
            INSECTS_COLLECTION,
            "user_id",
            user_id,
            order_by="detected_at",
            descending=True,
            limit=self._limit,
        )
        logger.info("insect_history_loaded", extra={"user_id": user_id, "count": len(records)})
        return [InsectHistoryItem.from_record(record) for record in records]
