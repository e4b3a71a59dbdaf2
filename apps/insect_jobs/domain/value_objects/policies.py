"""Retry / Retention 정책 Value Objects.

enqueue 시점에 작업마다 고정으로 부착되며, 이후 Worker 설정이 바뀌어도
이미 적재된 작업의 정책은 변하지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_DELAY_MS = 2000
DEFAULT_BACKOFF_MAX_MS = 60_000

DEFAULT_COMPLETED_MAX_AGE_SECONDS = 3600  # 1시간
DEFAULT_COMPLETED_MAX_COUNT = 100
DEFAULT_FAILED_MAX_AGE_SECONDS = 86400  # 24시간


@dataclass(frozen=True)
class RetryPolicy:
    """지수 backoff 재시도 정책.

    Attributes:
        max_attempts: 최대 실행 시도 횟수 (첫 시도 포함)
        backoff_delay_ms: 첫 재시도 대기 시간
        backoff_max_ms: backoff 상한
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_delay_ms: int = DEFAULT_BACKOFF_DELAY_MS
    backoff_max_ms: int = DEFAULT_BACKOFF_MAX_MS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_delay_ms < 0:
            raise ValueError("backoff_delay_ms must be >= 0")
        if self.backoff_max_ms < self.backoff_delay_ms:
            raise ValueError("backoff_max_ms must be >= backoff_delay_ms")

    def backoff_ms(self, attempt: int) -> int:
        """attempt번째 시도 실패 후 대기 시간.

        delay * 2^(attempt-1), backoff_max_ms로 상한.
        """
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        return min(self.backoff_delay_ms * 2 ** (attempt - 1), self.backoff_max_ms)


@dataclass(frozen=True)
class RetentionPolicy:
    """종료 작업 보존 정책 (advisory cleanup).

    completed: max_age 경과 또는 max_count 초과 시 오래된 것부터 삭제.
    failed: max_age 경과 시 삭제.
    """

    completed_max_age_seconds: int = DEFAULT_COMPLETED_MAX_AGE_SECONDS
    completed_max_count: int = DEFAULT_COMPLETED_MAX_COUNT
    failed_max_age_seconds: int = DEFAULT_FAILED_MAX_AGE_SECONDS

    def __post_init__(self) -> None:
        if self.completed_max_age_seconds < 1 or self.failed_max_age_seconds < 1:
            raise ValueError("retention age must be >= 1 second")
        if self.completed_max_count < 1:
            raise ValueError("completed_max_count must be >= 1")
