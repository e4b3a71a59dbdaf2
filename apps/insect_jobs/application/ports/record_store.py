"""Record Store Port.

컬렉션 단위 문서 저장소 (식별 결과 기록).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class RecordStorePort(ABC):
    """문서 저장소 포트."""

    @abstractmethod
    async def insert(self, collection: str, fields: dict[str, Any]) -> str:
        """문서 생성 후 ID 반환. created_at / updated_at은 저장소가 기록.

        Raises:
            RecordStoreError: 저장 실패
        """

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        """문서 조회. 반환 dict에는 id, created_at, updated_at 포함."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        field: str,
        value: str,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """field == value 문서 목록."""
