"""In-memory Job Broker.

단일 프로세스용 Broker. Redis Broker와 동일한 계약을 따른다:
배타적 전달, CAS commit, 지연 재시도, stall 재회수, retention.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from insect_jobs.application.ports.job_broker import (
    ClaimedJob,
    Delivery,
    JobBrokerPort,
    ReclaimOutcome,
)
from insect_jobs.core.clock import now_ms
from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.enums import JobState

logger = logging.getLogger(__name__)

STALLED_FAILURE_REASON = "job stalled more than allowable limit"


@dataclass
class _Pending:
    delivery: Delivery
    delivered_at: int


class InMemoryJobBroker(JobBrokerPort):
    """프로세스 내 Job Broker."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._jobs: dict[str, JobEnvelope] = {}
        self._waiting: asyncio.Queue[str] = asyncio.Queue()
        self._pending: dict[str, _Pending] = {}
        self._delayed: dict[str, int] = {}
        self._completed: OrderedDict[str, None] = OrderedDict()
        self._expires_at: dict[str, int] = {}
        self._tokens = itertools.count(1)

    async def setup(self) -> None:
        return None

    async def add(self, envelope: JobEnvelope) -> None:
        self._jobs[envelope.id] = copy.deepcopy(envelope)
        self._waiting.put_nowait(envelope.id)
        logger.debug("job_enqueued", extra={"job_id": envelope.id})

    async def get(self, job_id: str) -> JobEnvelope | None:
        self._purge_expired(self._clock())
        envelope = self._jobs.get(job_id)
        return copy.deepcopy(envelope) if envelope else None

    async def reserve(self, consumer: str, block_ms: int) -> Delivery | None:
        try:
            async with asyncio.timeout(block_ms / 1000):
                job_id = await self._waiting.get()
        except TimeoutError:
            return None

        delivery = Delivery(job_id=job_id, token=str(next(self._tokens)), consumer=consumer)
        self._pending[delivery.token] = _Pending(delivery=delivery, delivered_at=self._clock())
        return delivery

    async def activate(self, delivery: Delivery, now: int) -> ClaimedJob | None:
        envelope = self._jobs.get(delivery.job_id)
        if envelope is None or envelope.state is not JobState.WAITING:
            return None
        if envelope.is_last_attempt:
            return None

        envelope.activate(now)
        return ClaimedJob(
            delivery=delivery,
            envelope=copy.deepcopy(envelope),
            attempt=envelope.attempts,
        )

    async def release(self, delivery: Delivery) -> None:
        self._pending.pop(delivery.token, None)

    def _current_claim(self, claim: ClaimedJob) -> JobEnvelope | None:
        envelope = self._jobs.get(claim.job_id)
        if envelope is None or envelope.state is not JobState.ACTIVE:
            return None
        if envelope.attempts != claim.attempt:
            return None
        return envelope

    async def update_progress(self, claim: ClaimedJob, progress: int) -> bool:
        envelope = self._current_claim(claim)
        if envelope is None:
            return False
        return envelope.update_progress(progress)

    async def commit(self, claim: ClaimedJob, envelope: JobEnvelope) -> bool:
        if envelope.state not in (JobState.COMPLETED, JobState.DELAYED, JobState.FAILED):
            raise ValueError(f"cannot commit envelope in state {envelope.state.value}")

        if self._current_claim(claim) is None:
            logger.warning(
                "stale_commit_rejected",
                extra={
                    "job_id": claim.job_id,
                    "attempt": claim.attempt,
                    "state": envelope.state.value,
                },
            )
            return False

        stored = copy.deepcopy(envelope)
        self._jobs[claim.job_id] = stored
        self._pending.pop(claim.delivery.token, None)

        if stored.state is JobState.DELAYED:
            self._delayed[stored.id] = stored.delayed_until or 0
        elif stored.state is JobState.COMPLETED:
            self._expires_at[stored.id] = (
                (stored.finished_at or 0) + stored.retention.completed_max_age_seconds * 1000
            )
            self._completed[stored.id] = None
            while len(self._completed) > stored.retention.completed_max_count:
                evicted, _ = self._completed.popitem(last=False)
                self._drop(evicted)
        else:
            self._expires_at[stored.id] = (
                (stored.finished_at or 0) + stored.retention.failed_max_age_seconds * 1000
            )
        return True

    async def promote_delayed(self, now: int, limit: int = 100) -> int:
        due = sorted(
            (job_id for job_id, at in self._delayed.items() if at <= now),
            key=self._delayed.__getitem__,
        )[:limit]

        for job_id in due:
            del self._delayed[job_id]
            self._jobs[job_id].promote()
            self._waiting.put_nowait(job_id)
        return len(due)

    async def reclaim_stalled(
        self,
        consumer: str,
        min_idle_ms: int,
        now: int,
        count: int = 100,
    ) -> list[ReclaimOutcome]:
        stalled = [
            pending
            for pending in self._pending.values()
            if now - pending.delivered_at >= min_idle_ms
        ][:count]

        outcomes: list[ReclaimOutcome] = []
        for pending in stalled:
            del self._pending[pending.delivery.token]
            job_id = pending.delivery.job_id
            envelope = self._jobs.get(job_id)
            if envelope is None:
                continue

            if envelope.state is JobState.WAITING:
                self._waiting.put_nowait(job_id)
            elif envelope.state is JobState.ACTIVE:
                if envelope.requeue_stalled(STALLED_FAILURE_REASON, now) is JobState.WAITING:
                    self._waiting.put_nowait(job_id)
                else:
                    self._expires_at[job_id] = (
                        now + envelope.retention.failed_max_age_seconds * 1000
                    )
            outcomes.append(
                ReclaimOutcome(job_id=job_id, state=envelope.state, attempts=envelope.attempts)
            )
        return outcomes

    async def close(self) -> None:
        return None

    def waiting_count(self) -> int:
        return self._waiting.qsize()

    def _purge_expired(self, now: int) -> None:
        for job_id in [j for j, at in self._expires_at.items() if at <= now]:
            self._drop(job_id)

    def _drop(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)
        self._expires_at.pop(job_id, None)
        self._completed.pop(job_id, None)
