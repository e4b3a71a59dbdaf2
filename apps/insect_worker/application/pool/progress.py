"""Progress Reporter.

진행률 쓰기는 fire-and-forget이며, 실패해도 attempt에 영향을 주지 않는다.
Broker가 claim CAS로 감소/stale 쓰기를 무시한다.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine

from insect_jobs.application.ports import ClaimedJob, JobBrokerPort

logger = logging.getLogger(__name__)


class ProgressReporter:
    """claim 단위 진행률 보고."""

    def __init__(
        self,
        broker: JobBrokerPort,
        claim: ClaimedJob,
        spawn: Callable[[Coroutine], asyncio.Task],
    ) -> None:
        self._broker = broker
        self._claim = claim
        self._spawn = spawn
        self._last = 0

    @property
    def last(self) -> int:
        return self._last

    def report(self, value: int) -> None:
        """진행률 기록 (대기하지 않음)."""
        if value <= self._last:
            return
        self._last = value
        self._spawn(self._write(value))

    async def _write(self, value: int) -> None:
        try:
            await self._broker.update_progress(self._claim, value)
        except Exception as e:
            logger.warning(
                "progress_write_failed",
                extra={"job_id": self._claim.job_id, "progress": value, "error": str(e)},
            )
