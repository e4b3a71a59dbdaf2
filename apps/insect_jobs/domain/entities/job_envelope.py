"""Job Envelope Entity.

큐에 적재되는 작업 단위의 메타데이터 + 상태 머신.

상태 전이:
    waiting → active                (claim: attempts += 1, progress = 0)
    active  → completed             (progress = 100, result 기록)
    active  → delayed → waiting     (attempts < max_attempts, backoff 후 재진입)
    active  → failed                (attempts == max_attempts, failure_reason 기록)

Redis Hash 필드는 모두 문자열로 저장되며, 빈 문자열은 None을 의미한다.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from insect_jobs.domain.enums import JobState
from insect_jobs.domain.exceptions import InvalidJobTransitionError
from insect_jobs.domain.value_objects import RetentionPolicy, RetryPolicy


@dataclass(slots=True)
class JobEnvelope:
    """작업 Envelope.

    Attributes:
        id: 작업 ID (insect-{epoch_ms}-{suffix})
        payload: 코덱 wire 형태의 payload (JSON-safe dict)
        retry_policy: enqueue 시 부착된 재시도 정책
        retention: enqueue 시 부착된 보존 정책
        state: 현재 상태
        progress: 진행률 (0-100, attempt 내 단조 증가)
        attempts: claim 횟수
        result: 완료 결과 (completed에서만)
        failure_reason: 실패 사유 (failed에서만)
        enqueued_at / started_at / finished_at: epoch ms
        delayed_until: delayed 상태의 재진입 시각 (epoch ms)
    """

    id: str
    payload: dict[str, Any]
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    state: JobState = JobState.WAITING
    progress: int = 0
    attempts: int = 0
    result: dict[str, Any] | None = None
    failure_reason: str | None = None
    enqueued_at: int = 0
    started_at: int | None = None
    finished_at: int | None = None
    delayed_until: int | None = None

    # ─────────────────────────────────────────────────────────────
    # 상태 전이
    # ─────────────────────────────────────────────────────────────

    def _require(self, *allowed: JobState, target: JobState) -> None:
        if self.state not in allowed:
            raise InvalidJobTransitionError(self.id, self.state.value, target.value)

    @property
    def is_last_attempt(self) -> bool:
        return self.attempts >= self.retry_policy.max_attempts

    def activate(self, now: int) -> None:
        """waiting → active."""
        self._require(JobState.WAITING, target=JobState.ACTIVE)
        if self.is_last_attempt:
            raise InvalidJobTransitionError(self.id, self.state.value, JobState.ACTIVE.value)
        self.state = JobState.ACTIVE
        self.attempts += 1
        self.progress = 0
        self.started_at = now
        self.delayed_until = None

    def update_progress(self, value: int) -> bool:
        """진행률 갱신. active 상태에서 증가하는 경우에만 반영.

        Returns:
            실제로 갱신되었는지 여부
        """
        if self.state is not JobState.ACTIVE:
            return False
        value = max(0, min(100, int(value)))
        if value <= self.progress:
            return False
        self.progress = value
        return True

    def complete(self, result: dict[str, Any], now: int) -> None:
        """active → completed."""
        self._require(JobState.ACTIVE, target=JobState.COMPLETED)
        self.state = JobState.COMPLETED
        self.progress = 100
        self.result = result
        self.failure_reason = None
        self.finished_at = now

    def fail(self, reason: str, now: int) -> JobState:
        """active → delayed (재시도 남음) 또는 failed (마지막 시도).

        Returns:
            전이 후 상태
        """
        self._require(JobState.ACTIVE, target=JobState.FAILED)
        if self.is_last_attempt:
            self.state = JobState.FAILED
            self.failure_reason = reason
            self.result = None
            self.finished_at = now
            return self.state
        self.state = JobState.DELAYED
        self.delayed_until = now + self.retry_policy.backoff_ms(self.attempts)
        return self.state

    def promote(self) -> None:
        """delayed → waiting (backoff 만료)."""
        self._require(JobState.DELAYED, target=JobState.WAITING)
        self.state = JobState.WAITING
        self.delayed_until = None

    def requeue_stalled(self, reason: str, now: int) -> JobState:
        """stalled active → waiting, 마지막 시도였다면 failed."""
        self._require(JobState.ACTIVE, target=JobState.WAITING)
        if self.is_last_attempt:
            self.state = JobState.FAILED
            self.failure_reason = reason
            self.finished_at = now
            return self.state
        self.state = JobState.WAITING
        self.progress = 0
        return self.state

    # ─────────────────────────────────────────────────────────────
    # 직렬화 (Redis Hash)
    # ─────────────────────────────────────────────────────────────

    def to_mapping(self) -> dict[str, str]:
        """전체 필드를 Hash 매핑으로 변환."""
        mapping = {
            "id": self.id,
            "payload": json.dumps(self.payload, separators=(",", ":")),
            "max_attempts": str(self.retry_policy.max_attempts),
            "backoff_delay_ms": str(self.retry_policy.backoff_delay_ms),
            "backoff_max_ms": str(self.retry_policy.backoff_max_ms),
            "completed_max_age": str(self.retention.completed_max_age_seconds),
            "completed_max_count": str(self.retention.completed_max_count),
            "failed_max_age": str(self.retention.failed_max_age_seconds),
            "enqueued_at": str(self.enqueued_at),
        }
        mapping.update(self.state_mapping())
        return mapping

    def state_mapping(self) -> dict[str, str]:
        """상태 전이 시 갱신되는 필드만 반환."""
        return {
            "state": self.state.value,
            "progress": str(self.progress),
            "attempts": str(self.attempts),
            "result": _dump_optional(self.result),
            "failure_reason": self.failure_reason or "",
            "started_at": _str_optional(self.started_at),
            "finished_at": _str_optional(self.finished_at),
            "delayed_until": _str_optional(self.delayed_until),
        }

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> JobEnvelope:
        """Hash 매핑에서 복원."""
        data = {_text(k): _text(v) for k, v in data.items()}
        result = data.get("result") or ""
        return cls(
            id=data["id"],
            payload=json.loads(data["payload"]),
            retry_policy=RetryPolicy(
                max_attempts=int(data.get("max_attempts") or 3),
                backoff_delay_ms=int(data.get("backoff_delay_ms") or 2000),
                backoff_max_ms=int(data.get("backoff_max_ms") or 60_000),
            ),
            retention=RetentionPolicy(
                completed_max_age_seconds=int(data.get("completed_max_age") or 3600),
                completed_max_count=int(data.get("completed_max_count") or 100),
                failed_max_age_seconds=int(data.get("failed_max_age") or 86400),
            ),
            state=JobState(data.get("state") or JobState.WAITING.value),
            progress=int(data.get("progress") or 0),
            attempts=int(data.get("attempts") or 0),
            result=json.loads(result) if result else None,
            failure_reason=data.get("failure_reason") or None,
            enqueued_at=int(data.get("enqueued_at") or 0),
            started_at=_int_optional(data.get("started_at")),
            finished_at=_int_optional(data.get("finished_at")),
            delayed_until=_int_optional(data.get("delayed_until")),
        )


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _str_optional(value: int | None) -> str:
    return "" if value is None else str(value)


def _int_optional(value: str | None) -> int | None:
    return int(value) if value else None


def _dump_optional(value: dict[str, Any] | None) -> str:
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), default=str)
