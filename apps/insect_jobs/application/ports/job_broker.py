"""Job Broker Port.

작업 Envelope 저장 + 배타적 claim + 지연 재시도 + stall 감지를 제공하는 Broker 추상화.

claim은 두 단계로 이루어진다:
    1. reserve: 대기 스트림에서 전달(Delivery) 하나를 배타적으로 가져옴
    2. activate: Envelope를 waiting → active로 원자적 전이

모든 commit은 (state == active, attempts == claim.attempt) 조건부 쓰기이므로
stall 후 재claim된 작업을 이전 Worker가 덮어쓸 수 없다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.enums import JobState


@dataclass(frozen=True)
class Delivery:
    """대기 스트림에서 가져온 전달 단위.

    Attributes:
        job_id: 작업 ID
        token: Broker 내부 전달 식별자 (Redis Stream message ID 등)
        consumer: 전달받은 consumer 이름
    """

    job_id: str
    token: str
    consumer: str


@dataclass(frozen=True)
class ClaimedJob:
    """활성화된 claim.

    Attributes:
        delivery: 원본 전달
        envelope: active 전이 직후의 Envelope 스냅샷
        attempt: 이번 claim의 시도 번호 (commit CAS 기준)
    """

    delivery: Delivery
    envelope: JobEnvelope
    attempt: int

    @property
    def job_id(self) -> str:
        return self.delivery.job_id


@dataclass(frozen=True)
class ReclaimOutcome:
    """stall 재회수 결과."""

    job_id: str
    state: JobState
    attempts: int


class JobBrokerPort(ABC):
    """Job Broker 포트."""

    @abstractmethod
    async def setup(self) -> None:
        """스트림/consumer group 등 초기화 (멱등)."""

    @abstractmethod
    async def add(self, envelope: JobEnvelope) -> None:
        """Envelope 저장 + 대기 스트림 적재 (원자적).

        Raises:
            QueueUnavailableError: Broker 연결 불가
        """

    @abstractmethod
    async def get(self, job_id: str) -> JobEnvelope | None:
        """Envelope 조회. 없거나 retention으로 삭제된 경우 None.

        Raises:
            QueueUnavailableError: Broker 연결 불가
        """

    @abstractmethod
    async def reserve(self, consumer: str, block_ms: int) -> Delivery | None:
        """대기 스트림에서 전달 하나를 가져옴. block_ms 동안 없으면 None."""

    @abstractmethod
    async def activate(self, delivery: Delivery, now: int) -> ClaimedJob | None:
        """waiting → active 원자적 전이.

        Envelope가 없거나 waiting이 아니면 None (호출자는 release 해야 함).
        """

    @abstractmethod
    async def release(self, delivery: Delivery) -> None:
        """활성화되지 않은 전달을 폐기."""

    @abstractmethod
    async def update_progress(self, claim: ClaimedJob, progress: int) -> bool:
        """진행률 기록. claim이 더 이상 유효하지 않거나 감소하면 무시(False)."""

    @abstractmethod
    async def commit(self, claim: ClaimedJob, envelope: JobEnvelope) -> bool:
        """active에서 전이된 Envelope 상태를 조건부 기록.

        completed / delayed / failed 중 하나여야 하며,
        Broker의 현재 상태가 (active, claim.attempt)가 아니면 False.
        """

    @abstractmethod
    async def promote_delayed(self, now: int, limit: int = 100) -> int:
        """backoff가 만료된 delayed 작업을 waiting으로 재적재. 재적재 수 반환."""

    @abstractmethod
    async def reclaim_stalled(
        self,
        consumer: str,
        min_idle_ms: int,
        now: int,
        count: int = 100,
    ) -> list[ReclaimOutcome]:
        """min_idle_ms 이상 ack되지 않은 전달을 회수하여 waiting 재적재 또는 failed 처리."""

    @abstractmethod
    async def close(self) -> None:
        """연결 종료."""
