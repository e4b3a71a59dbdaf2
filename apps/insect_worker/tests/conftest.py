"""insect_worker 테스트 설정."""

from __future__ import annotations

import asyncio
import contextlib
import itertools

import pytest

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.application.ports import ClaimRateLimiterPort
from insect_jobs.core.clock import now_ms
from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.value_objects import ImagePayload, RetryPolicy
from insect_jobs.infrastructure.memory import InMemoryClaimRateLimiter, InMemoryJobBroker
from insect_worker.application.pool import (
    DelayedJobPromoter,
    JobHandler,
    StalledJobReclaimer,
    WorkerPool,
)

BACKOFF_DELAY_MS = 20


class ScriptedHandler(JobHandler):
    """시도 번호 기준으로 실패/지연을 흉내내는 핸들러."""

    def __init__(self, failures: int = 0, delay: float = 0.0, error: Exception | None = None):
        self.failures = failures
        self.delay = delay
        self.error = error or RuntimeError("vision model unavailable")
        self.calls: list[tuple[str, int, int]] = []
        self.active = 0
        self.max_active = 0

    async def execute(self, envelope, progress):
        self.calls.append((envelope.id, envelope.attempts, now_ms()))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            progress.report(10)
            if self.delay:
                await asyncio.sleep(self.delay)
            progress.report(30)
            if envelope.attempts <= self.failures:
                raise self.error
            return {"id": f"rec-{envelope.id}", "name": "Stag beetle"}
        finally:
            self.active -= 1


class RecordingLimiter(ClaimRateLimiterPort):
    """허용된 claim 시각을 기록."""

    def __init__(self, inner: ClaimRateLimiterPort):
        self.inner = inner
        self.granted: list[int] = []
        self.denied = 0

    async def acquire(self, now):
        decision = await self.inner.acquire(now)
        if decision.allowed:
            self.granted.append(now)
        else:
            self.denied += 1
        return decision


@pytest.fixture
def broker():
    return InMemoryJobBroker()


@pytest.fixture
def enqueue(broker):
    codec = PayloadCodec()
    counter = itertools.count(1)

    async def _enqueue(max_attempts: int = 3, payload: dict | None = None) -> str:
        job_id = f"insect-test-{next(counter)}"
        wire = payload or codec.encode(
            ImagePayload(image_bytes=b"\xff\xd8" + b"\x00" * 1024, mime_type="image/jpeg")
        )
        await broker.add(
            JobEnvelope(
                id=job_id,
                payload=wire,
                retry_policy=RetryPolicy(
                    max_attempts=max_attempts,
                    backoff_delay_ms=BACKOFF_DELAY_MS,
                ),
                enqueued_at=now_ms(),
            )
        )
        return job_id

    return _enqueue


async def wait_for_terminal(broker, job_ids, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        envelopes = [await broker.get(job_id) for job_id in job_ids]
        if all(e is not None and e.state.is_terminal for e in envelopes):
            return
        if asyncio.get_running_loop().time() > deadline:
            states = {e.id: e.state.value for e in envelopes if e}
            raise AssertionError(f"jobs not terminal in time: {states}")
        await asyncio.sleep(0.01)


@pytest.fixture
def run_pool(broker):
    async def _run(
        handler: JobHandler,
        job_ids: list[str],
        rate_limiter: ClaimRateLimiterPort | None = None,
        concurrency: int = 5,
        attempt_timeout_seconds: float = 2.0,
        reclaim_min_idle_ms: int | None = None,
        listener=None,
        timeout: float = 5.0,
    ) -> WorkerPool:
        pool = WorkerPool(
            broker=broker,
            handler=handler,
            rate_limiter=rate_limiter or InMemoryClaimRateLimiter(max_claims=10_000),
            consumer_name="worker-1",
            concurrency=concurrency,
            block_ms=20,
            attempt_timeout_seconds=attempt_timeout_seconds,
            listener=listener,
        )
        loops = [DelayedJobPromoter(broker, interval_seconds=0.005)]
        if reclaim_min_idle_ms is not None:
            loops.append(
                StalledJobReclaimer(
                    broker,
                    consumer_name="worker-1",
                    min_idle_ms=reclaim_min_idle_ms,
                    interval_seconds=0.01,
                )
            )

        pool_task = asyncio.create_task(pool.run())
        loop_tasks = [asyncio.create_task(loop.run()) for loop in loops]
        try:
            await wait_for_terminal(broker, job_ids, timeout=timeout)
        finally:
            pool.shutdown()
            await asyncio.wait_for(pool_task, timeout=5.0)
            for task in loop_tasks:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        return pool

    return _run


@pytest.fixture
def make_handler():
    return ScriptedHandler


@pytest.fixture
def make_recording_limiter():
    return RecordingLimiter
