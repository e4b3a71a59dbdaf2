"""Worker Pool Listener.

Pool 인스턴스 생성 시 주입되는 완료/재시도/실패 콜백.
"""

from __future__ import annotations

import logging

from insect_jobs.domain.entities import JobEnvelope

logger = logging.getLogger(__name__)


class WorkerPoolListener:
    """기본 Listener (no-op)."""

    async def on_completed(self, envelope: JobEnvelope) -> None:
        return None

    async def on_retry(self, envelope: JobEnvelope, error: BaseException) -> None:
        return None

    async def on_failed(self, envelope: JobEnvelope, error: BaseException) -> None:
        return None

    async def on_error(self, error: BaseException) -> None:
        """claim 단위로 귀속되지 않는 Pool 오류 (Broker 장애 등)."""
        return None


class LoggingListener(WorkerPoolListener):
    """작업 결과 로깅."""

    async def on_completed(self, envelope: JobEnvelope) -> None:
        logger.info(
            "job_completed",
            extra={
                "job_id": envelope.id,
                "attempts": envelope.attempts,
                "duration_ms": (envelope.finished_at or 0) - (envelope.started_at or 0),
            },
        )

    async def on_retry(self, envelope: JobEnvelope, error: BaseException) -> None:
        logger.warning(
            "job_retry_scheduled",
            extra={
                "job_id": envelope.id,
                "attempt": envelope.attempts,
                "delayed_until": envelope.delayed_until,
                "error": str(error),
            },
        )

    async def on_failed(self, envelope: JobEnvelope, error: BaseException) -> None:
        logger.error(
            "job_failed",
            extra={
                "job_id": envelope.id,
                "attempts": envelope.attempts,
                "failure_reason": envelope.failure_reason,
            },
        )

    async def on_error(self, error: BaseException) -> None:
        logger.error("worker_pool_error", extra={"error": str(error)})


class CompositeListener(WorkerPoolListener):
    """여러 Listener에 순서대로 전달."""

    def __init__(self, *listeners: WorkerPoolListener) -> None:
        self._listeners = listeners

    async def on_completed(self, envelope: JobEnvelope) -> None:
        for listener in self._listeners:
            await listener.on_completed(envelope)

    async def on_retry(self, envelope: JobEnvelope, error: BaseException) -> None:
        for listener in self._listeners:
            await listener.on_retry(envelope, error)

    async def on_failed(self, envelope: JobEnvelope, error: BaseException) -> None:
        for listener in self._listeners:
            await listener.on_failed(envelope, error)

    async def on_error(self, error: BaseException) -> None:
        for listener in self._listeners:
            await listener.on_error(error)
