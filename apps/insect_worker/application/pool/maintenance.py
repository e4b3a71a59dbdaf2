"""Worker Pool Maintenance Loops.

- DelayedJobPromoter: backoff가 만료된 delayed 작업을 waiting으로 재적재
- StalledJobReclaimer: XAUTOCLAIM으로 죽은 consumer의 전달을 회수
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from insect_jobs.application.ports import JobBrokerPort
from insect_jobs.core.clock import now_ms
from insect_worker.metrics import INSECT_WORKER_PROMOTED, INSECT_WORKER_RECLAIMED

logger = logging.getLogger(__name__)


class DelayedJobPromoter:
    """지연 재시도 promote 루프."""

    def __init__(
        self,
        broker: JobBrokerPort,
        interval_seconds: float = 0.5,
        batch_size: int = 100,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._broker = broker
        self._interval = interval_seconds
        self._batch_size = batch_size
        self._clock = clock
        self._shutdown = False

    async def run(self) -> None:
        logger.info("promoter_started", extra={"interval_seconds": self._interval})

        while not self._shutdown:
            try:
                await self.promote_once()
            except asyncio.CancelledError:
                logger.info("promoter_cancelled")
                break
            except Exception as e:
                logger.error("promoter_error", extra={"error": str(e)})
            await asyncio.sleep(self._interval)

        logger.info("promoter_stopped")

    async def promote_once(self) -> int:
        promoted = await self._broker.promote_delayed(self._clock(), self._batch_size)
        if promoted:
            INSECT_WORKER_PROMOTED.inc(promoted)
            logger.debug("delayed_jobs_promoted", extra={"count": promoted})
        return promoted

    def shutdown(self) -> None:
        self._shutdown = True


class StalledJobReclaimer:
    """stall 감지 루프.

    stalled_min_idle_ms 이상 ack되지 않은 전달을 회수하여
    waiting으로 재적재하거나, 마지막 시도였다면 failed로 전이.
    """

    def __init__(
        self,
        broker: JobBrokerPort,
        consumer_name: str,
        min_idle_ms: int = 30_000,
        interval_seconds: float = 30.0,
        count: int = 100,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """초기화.

        Args:
            broker: Job Broker
            consumer_name: 회수한 전달을 넘겨받을 consumer 이름
            min_idle_ms: stall 판정 최소 idle 시간
            interval_seconds: 회수 주기
            count: 한 번에 회수할 최대 전달 수
            clock: epoch ms 시계
        """
        self._broker = broker
        self._consumer = consumer_name
        self._min_idle_ms = min_idle_ms
        self._interval = interval_seconds
        self._count = count
        self._clock = clock
        self._shutdown = False

    async def run(self) -> None:
        logger.info(
            "reclaimer_started",
            extra={
                "consumer_name": self._consumer,
                "min_idle_ms": self._min_idle_ms,
                "interval_seconds": self._interval,
            },
        )

        while not self._shutdown:
            try:
                await self.reclaim_once()
            except asyncio.CancelledError:
                logger.info("reclaimer_cancelled")
                break
            except Exception as e:
                logger.error("reclaimer_error", extra={"error": str(e)})
            await asyncio.sleep(self._interval)

        logger.info("reclaimer_stopped")

    async def reclaim_once(self) -> int:
        outcomes = await self._broker.reclaim_stalled(
            self._consumer,
            self._min_idle_ms,
            self._clock(),
            self._count,
        )
        for outcome in outcomes:
            INSECT_WORKER_RECLAIMED.labels(state=outcome.state.value).inc()
            logger.warning(
                "stalled_job_reclaimed",
                extra={
                    "job_id": outcome.job_id,
                    "attempts": outcome.attempts,
                    "state": outcome.state.value,
                },
            )
        return len(outcomes)

    def shutdown(self) -> None:
        self._shutdown = True
