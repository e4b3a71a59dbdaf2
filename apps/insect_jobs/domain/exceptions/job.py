"""Job 도메인 예외."""

from __future__ import annotations

from insect_jobs.domain.exceptions.base import DomainError


class InvalidJobTransitionError(DomainError):
    """허용되지 않는 상태 전이."""

    code = "INVALID_TRANSITION"

    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id}: cannot transition {current} -> {target}")


class PayloadValidationError(DomainError):
    """enqueue 입력 payload 검증 실패."""

    code = "INVALID_PAYLOAD"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid payload field '{field}': {reason}")
