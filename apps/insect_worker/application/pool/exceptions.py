"""Worker Pool 예외."""

from insect_jobs.application.common.exceptions import ApplicationError


class AttemptTimeoutError(ApplicationError):
    """attempt가 제한 시간 내에 끝나지 않음 (재시도 대상)."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Attempt timed out after {timeout_seconds}s")
