"""Classifier Port - 곤충 이미지 식별 추상화."""

from __future__ import annotations

from abc import ABC, abstractmethod

from insect_worker.application.identify.dto import InsectIdentification


class ClassifierPort(ABC):
    """Vision 분류 포트."""

    @abstractmethod
    async def classify(self, image_bytes: bytes, mime_type: str) -> InsectIdentification:
        """이미지에서 곤충 식별.

        Raises:
            ClassificationError: 모델 호출 실패 또는 필수 필드 누락
        """
