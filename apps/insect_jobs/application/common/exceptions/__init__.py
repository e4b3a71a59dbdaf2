"""Application 레이어 예외."""

from insect_jobs.application.common.exceptions.base import (
    ApplicationError,
    PayloadCorruptError,
    QueueUnavailableError,
    RecordStoreError,
)

__all__ = [
    "ApplicationError",
    "PayloadCorruptError",
    "QueueUnavailableError",
    "RecordStoreError",
]
