"""Job State Enum."""

from enum import Enum


class JobState(str, Enum):
    """작업 Envelope 상태.

    waiting → active → {completed | delayed → waiting | failed}
    delayed는 재시도 backoff 대기 중인 waiting의 하위 상태.
    """

    WAITING = "waiting"
    ACTIVE = "active"
    DELAYED = "delayed"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부 (retention 삭제 외 전이 없음)."""
        return self in (JobState.COMPLETED, JobState.FAILED)
