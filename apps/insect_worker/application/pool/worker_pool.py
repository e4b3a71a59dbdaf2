"""Worker Pool.

대기 스트림에서 작업을 claim하여 파이프라인을 실행하는 비동기 Worker Pool.

동작:
    1. 동시성 슬롯 획득 (asyncio.Semaphore, 기본 5)
    2. reserve: 대기 스트림에서 전달 하나를 배타적으로 가져옴
    3. claim rate limit 슬롯 대기 (모든 인스턴스 공유)
    4. activate: waiting → active
    5. 파이프라인 실행 (attempt timeout)
    6. commit: completed / delayed / failed (CAS)

파이프라인 예외는 모두 _process 경계에서 상태 전이로 변환된다.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Coroutine

from insect_jobs.application.ports import (
    ClaimedJob,
    ClaimRateLimiterPort,
    Delivery,
    JobBrokerPort,
)
from insect_jobs.core.clock import now_ms
from insect_jobs.domain.enums import JobState
from insect_worker.application.pool.exceptions import AttemptTimeoutError
from insect_worker.application.pool.handler import JobHandler
from insect_worker.application.pool.listeners import WorkerPoolListener
from insect_worker.application.pool.progress import ProgressReporter
from insect_worker.metrics import (
    INSECT_WORKER_ACTIVE,
    INSECT_WORKER_ATTEMPT_LATENCY,
    INSECT_WORKER_CLAIMS,
    INSECT_WORKER_ERRORS,
    INSECT_WORKER_OUTCOMES,
    INSECT_WORKER_RATE_LIMITED,
    INSECT_WORKER_STATUS,
)

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_BLOCK_MS = 2000
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 60.0
ERROR_BACKOFF_SECONDS = 1.0


class WorkerPool:
    """비동기 Worker Pool."""

    def __init__(
        self,
        broker: JobBrokerPort,
        handler: JobHandler,
        rate_limiter: ClaimRateLimiterPort,
        consumer_name: str,
        concurrency: int = DEFAULT_CONCURRENCY,
        block_ms: int = DEFAULT_BLOCK_MS,
        attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
        listener: WorkerPoolListener | None = None,
        clock: Callable[[], int] = now_ms,
        error_backoff_seconds: float = ERROR_BACKOFF_SECONDS,
    ) -> None:
        """초기화.

        Args:
            broker: Job Broker
            handler: 파이프라인
            rate_limiter: 공유 claim rate limiter
            consumer_name: Consumer Group 내 이 인스턴스의 이름
            concurrency: 동시 active claim 상한
            block_ms: reserve 블로킹 시간
            attempt_timeout_seconds: attempt 제한 시간
            listener: 완료/재시도/실패 콜백
            clock: epoch ms 시계
            error_backoff_seconds: Broker 오류 후 재시도 대기
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")

        self._broker = broker
        self._handler = handler
        self._rate_limiter = rate_limiter
        self._consumer = consumer_name
        self._concurrency = concurrency
        self._block_ms = block_ms
        self._attempt_timeout = attempt_timeout_seconds
        self._listener = listener or WorkerPoolListener()
        self._clock = clock
        self._error_backoff = error_backoff_seconds

        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._background: set[asyncio.Task] = set()
        self._shutdown = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def run(self) -> None:
        """Pool 메인 루프. shutdown() 후 진행 중인 attempt가 끝나면 반환."""
        logger.info(
            "worker_pool_started",
            extra={
                "consumer_name": self._consumer,
                "concurrency": self._concurrency,
                "attempt_timeout_seconds": self._attempt_timeout,
            },
        )
        INSECT_WORKER_STATUS.set(1)

        try:
            while not self._shutdown:
                await self._semaphore.acquire()
                if self._shutdown:
                    self._semaphore.release()
                    break

                try:
                    delivery = await self._broker.reserve(self._consumer, self._block_ms)
                except Exception as e:
                    self._semaphore.release()
                    logger.error("reserve_error", extra={"error": str(e)})
                    await self._listener.on_error(e)
                    await asyncio.sleep(self._error_backoff)
                    continue

                if delivery is None:
                    self._semaphore.release()
                    continue

                task = asyncio.create_task(self._process(delivery))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            await self._drain()
            INSECT_WORKER_STATUS.set(0)
            logger.info("worker_pool_stopped", extra={"consumer_name": self._consumer})

    def shutdown(self) -> None:
        """claim 중단 요청. 진행 중인 attempt는 끝까지 실행된다."""
        self._shutdown = True
        logger.info("worker_pool_shutdown_requested", extra={"in_flight": self.in_flight})

    async def _drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _spawn_background(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ─────────────────────────────────────────────────────────────
    # claim 처리
    # ─────────────────────────────────────────────────────────────

    async def _process(self, delivery: Delivery) -> None:
        try:
            claim = await self._claim(delivery)
            if claim is not None:
                await self._execute(claim)
        except Exception as e:
            logger.error(
                "claim_process_error",
                extra={"job_id": delivery.job_id, "error": str(e)},
            )
            await self._listener.on_error(e)
        finally:
            self._semaphore.release()

    async def _claim(self, delivery: Delivery) -> ClaimedJob | None:
        """rate limit 슬롯 획득 후 waiting → active 전이.

        purge되었거나 더 이상 waiting이 아닌 작업의 전달은 슬롯을 쓰기 전에
        버린다. activate는 여전히 CAS이므로 확인 직후 상태가 바뀌어도 안전하다.
        """
        envelope = await self._broker.get(delivery.job_id)
        if envelope is None or envelope.state is not JobState.WAITING:
            await self._discard(delivery)
            return None

        while True:
            decision = await self._rate_limiter.acquire(self._clock())
            if decision.allowed:
                break
            INSECT_WORKER_RATE_LIMITED.inc()
            await asyncio.sleep(decision.retry_after_ms / 1000)

        claim = await self._broker.activate(delivery, self._clock())
        if claim is None:
            await self._discard(delivery)
            return None

        INSECT_WORKER_CLAIMS.inc()
        logger.info(
            "job_claimed",
            extra={"job_id": claim.job_id, "attempt": claim.attempt},
        )
        return claim

    async def _discard(self, delivery: Delivery) -> None:
        await self._broker.release(delivery)
        logger.info(
            "delivery_discarded",
            extra={"job_id": delivery.job_id, "msg_id": delivery.token},
        )

    async def _execute(self, claim: ClaimedJob) -> None:
        progress = ProgressReporter(self._broker, claim, self._spawn_background)
        INSECT_WORKER_ACTIVE.inc()
        start_time = time.perf_counter()

        try:
            try:
                result = await asyncio.wait_for(
                    self._handler.execute(claim.envelope, progress),
                    timeout=self._attempt_timeout,
                )
            except asyncio.TimeoutError:
                await self._settle_failure(claim, AttemptTimeoutError(self._attempt_timeout))
            except Exception as e:
                await self._settle_failure(claim, e)
            else:
                await self._settle_success(claim, result)
        finally:
            INSECT_WORKER_ACTIVE.dec()
            INSECT_WORKER_ATTEMPT_LATENCY.observe(time.perf_counter() - start_time)

    async def _settle_success(self, claim: ClaimedJob, result: dict[str, Any]) -> None:
        envelope = claim.envelope
        envelope.complete(result, self._clock())

        if not await self._broker.commit(claim, envelope):
            INSECT_WORKER_OUTCOMES.labels(state="stale").inc()
            return

        INSECT_WORKER_OUTCOMES.labels(state=JobState.COMPLETED.value).inc()
        await self._listener.on_completed(envelope)

    async def _settle_failure(self, claim: ClaimedJob, error: Exception) -> None:
        INSECT_WORKER_ERRORS.labels(error_type=type(error).__name__).inc()
        envelope = claim.envelope
        state = envelope.fail(_failure_reason(error), self._clock())

        logger.warning(
            "job_attempt_failed",
            extra={
                "job_id": claim.job_id,
                "attempt": claim.attempt,
                "next_state": state.value,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )

        if not await self._broker.commit(claim, envelope):
            INSECT_WORKER_OUTCOMES.labels(state="stale").inc()
            return

        INSECT_WORKER_OUTCOMES.labels(state=state.value).inc()
        if state is JobState.DELAYED:
            await self._listener.on_retry(envelope, error)
        else:
            await self._listener.on_failed(envelope, error)


def _failure_reason(error: Exception) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or type(error).__name__
