"""Application 레이어 예외 정의.

message는 호출자(HTTP 응답, 작업 failure_reason)에 노출되는 고정 문구이고,
reason은 로그에만 남기는 내부 원인(호스트, 드라이버 에러 텍스트 등)이다.
"""

from __future__ import annotations


class ApplicationError(Exception):
    """Application 레이어 베이스 예외."""

    code = "APPLICATION_ERROR"

    def __init__(self, message: str = "Application error occurred", reason: str = "") -> None:
        self.message = message
        self.reason = reason
        super().__init__(f"{message}: {reason}" if reason else message)


class QueueUnavailableError(ApplicationError):
    """Broker(Redis) 연결 불가.

    NOT_FOUND와 구분되어 호출자에게 전파된다 (HTTP 503).
    """

    code = "QUEUE_UNAVAILABLE"

    def __init__(self, reason: str = "") -> None:
        super().__init__("Job queue is unavailable", reason)


class PayloadCorruptError(ApplicationError):
    """wire payload 디코딩 실패."""

    code = "PAYLOAD_CORRUPT"

    def __init__(self, reason: str) -> None:
        # 디코딩 사유는 내부 정보가 아니므로 message에 포함
        super().__init__(f"Corrupt job payload: {reason}")
        self.reason = reason


class RecordStoreError(ApplicationError):
    """문서 저장소 읽기/쓰기 실패."""

    code = "RECORD_STORE_ERROR"

    def __init__(self, reason: str) -> None:
        super().__init__("Failed to access identification records", reason)
