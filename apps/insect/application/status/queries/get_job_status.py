"""Get Job Status Query - 작업 상태 조회 (pure read)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from insect_jobs.application.ports import JobBrokerPort
from insect_jobs.core.clock import from_epoch_ms
from insect_jobs.domain.enums import JobState

logger = logging.getLogger(__name__)


@dataclass
class JobStatusView:
    """작업 상태 projection.

    result는 completed에서만, failure_reason은 failed에서만 채워진다.
    """

    id: str
    state: JobState
    progress: int
    attempts: int
    result: dict[str, Any] | None
    failure_reason: str | None
    enqueued_at: datetime
    started_at: datetime | None
    finished_at: datetime | None


class GetJobStatusQuery:
    """작업 상태 조회 Query."""

    def __init__(self, broker: JobBrokerPort):
        self._broker = broker

    async def execute(self, job_id: str) -> JobStatusView | None:
        """상태 조회 실행.

        Returns:
            - JobStatusView
            - None: 존재하지 않거나 retention으로 삭제된 작업

        Raises:
            QueueUnavailableError: Broker 연결 불가 (NOT_FOUND로 보고하지 않음)
        """
        envelope = await self._broker.get(job_id)
        if envelope is None:
            logger.info("job_status_not_found", extra={"job_id": job_id})
            return None

        return JobStatusView(
            id=envelope.id,
            state=envelope.state,
            progress=envelope.progress,
            attempts=envelope.attempts,
            result=envelope.result if envelope.state is JobState.COMPLETED else None,
            failure_reason=(
                envelope.failure_reason if envelope.state is JobState.FAILED else None
            ),
            enqueued_at=from_epoch_ms(envelope.enqueued_at),
            started_at=from_epoch_ms(envelope.started_at),
            finished_at=from_epoch_ms(envelope.finished_at),
        )
