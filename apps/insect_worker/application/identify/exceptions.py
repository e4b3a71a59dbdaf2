"""Identification Pipeline 예외.

모든 예외는 Worker Pool 경계에서 재시도 경로로 처리된다.
"""

from insect_jobs.application.common.exceptions import ApplicationError, RecordStoreError


class ClassificationError(ApplicationError):
    """Vision 모델 호출/응답 오류."""

    code = "CLASSIFICATION_ERROR"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to identify insect: {reason}")


class ObjectStorageError(ApplicationError):
    """이미지 업로드 실패."""

    code = "OBJECT_STORAGE_ERROR"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to upload image: {reason}")


__all__ = ["ClassificationError", "ObjectStorageError", "RecordStoreError"]
