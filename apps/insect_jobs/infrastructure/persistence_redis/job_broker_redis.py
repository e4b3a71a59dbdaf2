"""Redis Job Broker.

Redis Streams Consumer Group 기반 Job Broker.

- XREADGROUP: 대기 스트림 전달을 정확히 하나의 consumer에게 할당
- Lua: waiting → active, commit CAS, 지연 재시도 promote
- XAUTOCLAIM: 죽은 consumer의 전달 재회수
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError, ResponseError

from insect_jobs.application.common.exceptions import QueueUnavailableError
from insect_jobs.application.ports.job_broker import (
    ClaimedJob,
    Delivery,
    JobBrokerPort,
    ReclaimOutcome,
)
from insect_jobs.core.constants import DEFAULT_CONSUMER_GROUP
from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.enums import JobState
from insect_jobs.infrastructure.persistence_redis.keys import QueueKeys
from insect_jobs.infrastructure.persistence_redis.scripts import (
    ACTIVATE_SCRIPT,
    COMMIT_SCRIPT,
    PROGRESS_SCRIPT,
    PROMOTE_SCRIPT,
    REQUEUE_STALLED_SCRIPT,
)

if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

STALLED_FAILURE_REASON = "job stalled more than allowable limit"


class RedisJobBroker(JobBrokerPort):
    """Redis 기반 Job Broker."""

    def __init__(
        self,
        redis_client: "aioredis.Redis",
        keys: QueueKeys | None = None,
        consumer_group: str = DEFAULT_CONSUMER_GROUP,
    ) -> None:
        self._redis = redis_client
        self._keys = keys or QueueKeys()
        self._group = consumer_group

        self._activate_script = redis_client.register_script(ACTIVATE_SCRIPT)
        self._commit_script = redis_client.register_script(COMMIT_SCRIPT)
        self._progress_script = redis_client.register_script(PROGRESS_SCRIPT)
        self._promote_script = redis_client.register_script(PROMOTE_SCRIPT)
        self._requeue_script = redis_client.register_script(REQUEUE_STALLED_SCRIPT)

    @property
    def keys(self) -> QueueKeys:
        return self._keys

    async def setup(self) -> None:
        """Consumer Group 생성 (이미 있으면 무시)."""
        try:
            await self._redis.xgroup_create(
                self._keys.wait,
                self._group,
                id="0",
                mkstream=True,
            )
            logger.info(
                "consumer_group_created",
                extra={"stream": self._keys.wait, "group": self._group},
            )
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise QueueUnavailableError(str(e)) from e
            logger.debug(
                "consumer_group_exists",
                extra={"stream": self._keys.wait, "group": self._group},
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

    async def add(self, envelope: JobEnvelope) -> None:
        """Hash 저장 + 스트림 적재 (MULTI/EXEC)."""
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.hset(self._keys.job(envelope.id), mapping=envelope.to_mapping())
            pipe.xadd(self._keys.wait, {"job_id": envelope.id})
            await pipe.execute()
        except RedisError as e:
            logger.error(
                "job_enqueue_failed",
                extra={"job_id": envelope.id, "error": str(e)},
            )
            raise QueueUnavailableError(str(e)) from e

        logger.debug("job_enqueued", extra={"job_id": envelope.id})

    async def get(self, job_id: str) -> JobEnvelope | None:
        try:
            data = await self._redis.hgetall(self._keys.job(job_id))
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        if not data:
            return None
        return JobEnvelope.from_mapping(data)

    async def reserve(self, consumer: str, block_ms: int) -> Delivery | None:
        try:
            response = await self._redis.xreadgroup(
                groupname=self._group,
                consumername=consumer,
                streams={self._keys.wait: ">"},
                count=1,
                block=block_ms,
            )
        except ResponseError as e:
            if "NOGROUP" in str(e):
                # 스트림이 삭제된 경우 group 재생성
                await self.setup()
                return None
            raise QueueUnavailableError(str(e)) from e
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        if not response:
            return None

        # response: [[stream, [(msg_id, {job_id: ...})]]]
        for _stream, messages in response:
            for msg_id, fields in messages:
                return Delivery(
                    job_id=fields["job_id"],
                    token=msg_id,
                    consumer=consumer,
                )
        return None

    async def activate(self, delivery: Delivery, now: int) -> ClaimedJob | None:
        try:
            raw = await self._activate_script(
                keys=[self._keys.job(delivery.job_id)],
                args=[now],
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        if not raw:
            return None

        envelope = JobEnvelope.from_mapping(_pairs_to_dict(raw))
        return ClaimedJob(delivery=delivery, envelope=envelope, attempt=envelope.attempts)

    async def release(self, delivery: Delivery) -> None:
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.xack(self._keys.wait, self._group, delivery.token)
            pipe.xdel(self._keys.wait, delivery.token)
            await pipe.execute()
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        logger.debug(
            "delivery_released",
            extra={"job_id": delivery.job_id, "msg_id": delivery.token},
        )

    async def update_progress(self, claim: ClaimedJob, progress: int) -> bool:
        try:
            updated = await self._progress_script(
                keys=[self._keys.job(claim.job_id)],
                args=[claim.attempt, progress],
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e
        return bool(updated)

    async def commit(self, claim: ClaimedJob, envelope: JobEnvelope) -> bool:
        state = envelope.state
        if state is JobState.COMPLETED:
            score = envelope.finished_at
            ttl = envelope.retention.completed_max_age_seconds
        elif state is JobState.FAILED:
            score = envelope.finished_at
            ttl = envelope.retention.failed_max_age_seconds
        elif state is JobState.DELAYED:
            score = envelope.delayed_until
            ttl = 0
        else:
            raise ValueError(f"cannot commit envelope in state {state.value}")

        args: list[Any] = [
            self._group,
            claim.delivery.token,
            claim.job_id,
            claim.attempt,
            state.value,
            score or 0,
            ttl,
            envelope.retention.completed_max_count,
            self._keys.job_prefix,
        ]
        for field_name, value in envelope.state_mapping().items():
            if field_name in ("attempts", "started_at"):
                continue
            args.extend((field_name, value))

        try:
            written = await self._commit_script(
                keys=[
                    self._keys.job(claim.job_id),
                    self._keys.wait,
                    self._keys.delayed,
                    self._keys.completed,
                ],
                args=args,
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        if not written:
            logger.warning(
                "stale_commit_rejected",
                extra={
                    "job_id": claim.job_id,
                    "attempt": claim.attempt,
                    "state": state.value,
                },
            )
        return bool(written)

    async def promote_delayed(self, now: int, limit: int = 100) -> int:
        try:
            promoted = await self._promote_script(
                keys=[self._keys.delayed, self._keys.wait],
                args=[now, limit, self._keys.job_prefix],
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e
        return int(promoted or 0)

    async def reclaim_stalled(
        self,
        consumer: str,
        min_idle_ms: int,
        now: int,
        count: int = 100,
    ) -> list[ReclaimOutcome]:
        try:
            result = await self._redis.xautoclaim(
                self._keys.wait,
                self._group,
                consumer,
                min_idle_time=min_idle_ms,
                start_id="0-0",
                count=count,
            )
        except ResponseError as e:
            if "NOGROUP" in str(e):
                return []
            raise QueueUnavailableError(str(e)) from e
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        # result: (next_start_id, [(msg_id, data), ...], deleted_ids)
        if len(result) < 2 or not result[1]:
            return []

        outcomes: list[ReclaimOutcome] = []
        for msg_id, fields in result[1]:
            if not fields or "job_id" not in fields:
                # 스트림에서 삭제된 전달
                await self._redis.xack(self._keys.wait, self._group, msg_id)
                continue

            job_id = fields["job_id"]
            try:
                state, attempts = await self._requeue_script(
                    keys=[self._keys.job(job_id), self._keys.wait],
                    args=[self._group, msg_id, job_id, now, STALLED_FAILURE_REASON],
                )
            except RedisError as e:
                raise QueueUnavailableError(str(e)) from e

            if state == "missing":
                continue
            outcomes.append(
                ReclaimOutcome(job_id=job_id, state=JobState(state), attempts=int(attempts))
            )

        return outcomes

    async def close(self) -> None:
        await self._redis.aclose()


def _pairs_to_dict(raw: list[Any]) -> dict[str, Any]:
    """HGETALL flat list → dict."""
    return {raw[i]: raw[i + 1] for i in range(0, len(raw), 2)}
