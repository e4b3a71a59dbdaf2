"""Enqueue Identification Command - 식별 작업 적재.

요청 경로에서는 payload 검증 후 Envelope를 Broker에 기록하고 job_id만 반환한다.
실제 분류는 insect_worker가 수행한다.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.application.ports import JobBrokerPort
from insect_jobs.core.clock import now_ms
from insect_jobs.core.constants import JOB_ID_PREFIX
from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.value_objects import ImagePayload, RetentionPolicy, RetryPolicy

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
JOB_ID_SUFFIX_LENGTH = 6


def generate_job_id(epoch_ms: int) -> str:
    """insect-{epoch_ms}-{base36 suffix}."""
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(JOB_ID_SUFFIX_LENGTH))
    return f"{JOB_ID_PREFIX}-{epoch_ms}-{suffix}"


@dataclass
class EnqueueIdentificationRequest:
    """식별 작업 적재 요청 DTO."""

    image_bytes: bytes
    mime_type: str
    original_file_name: str = ""
    user_id: str | None = None


class EnqueueIdentificationCommand:
    """식별 작업 적재 Command.

    Envelope(hash) + 대기 스트림 entry를 한 번에 기록한 뒤 job_id를 반환한다.
    Broker에 기록되기 전에는 job_id를 반환하지 않는다.
    """

    def __init__(
        self,
        broker: JobBrokerPort,
        codec: PayloadCodec,
        retry_policy: RetryPolicy | None = None,
        retention: RetentionPolicy | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """초기화.

        Args:
            broker: Job Broker
            codec: payload wire 코덱
            retry_policy: 작업에 부착할 재시도 정책
            retention: 작업에 부착할 보존 정책
            clock: epoch ms 시계
        """
        self._broker = broker
        self._codec = codec
        self._retry_policy = retry_policy or RetryPolicy()
        self._retention = retention or RetentionPolicy()
        self._clock = clock

    async def execute(self, request: EnqueueIdentificationRequest) -> str:
        """작업 적재.

        Returns:
            job_id

        Raises:
            PayloadValidationError: image_bytes 비어있음 / mime_type 누락
            QueueUnavailableError: Broker 연결 불가
        """
        payload = ImagePayload(
            image_bytes=request.image_bytes,
            mime_type=request.mime_type,
            original_file_name=request.original_file_name or "",
            user_id=request.user_id or None,
        )
        payload.validate()

        now = self._clock()
        envelope = JobEnvelope(
            id=generate_job_id(now),
            payload=self._codec.encode(payload),
            retry_policy=self._retry_policy,
            retention=self._retention,
            enqueued_at=now,
        )
        await self._broker.add(envelope)

        logger.info(
            "identification_job_enqueued",
            extra={
                "job_id": envelope.id,
                "user_id": payload.user_id,
                "mime_type": payload.mime_type,
                "size_bytes": payload.size,
                "max_attempts": self._retry_policy.max_attempts,
            },
        )
        return envelope.id
