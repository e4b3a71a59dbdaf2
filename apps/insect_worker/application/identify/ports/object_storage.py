"""Object Storage Port."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ObjectStoragePort(ABC):
    """이미지 저장소 포트."""

    @abstractmethod
    async def store(self, data: bytes, destination_path: str, content_type: str) -> str:
        """업로드 후 공개 URL 반환.

        Raises:
            ObjectStorageError: 업로드 실패
        """
