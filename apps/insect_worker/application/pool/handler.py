"""Job Handler Port."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from insect_jobs.domain.entities import JobEnvelope
    from insect_worker.application.pool.progress import ProgressReporter


class JobHandler(ABC):
    """claim 하나를 처리하는 파이프라인.

    예외를 던지면 재시도 경로로, 반환값은 completed 결과로 기록된다.
    """

    @abstractmethod
    async def execute(
        self,
        envelope: "JobEnvelope",
        progress: "ProgressReporter",
    ) -> dict[str, Any]:
        """파이프라인 실행."""
