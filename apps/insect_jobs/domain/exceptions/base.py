"""Job Queue 도메인 예외 베이스."""

from __future__ import annotations


class DomainError(Exception):
    """Envelope / payload 규칙 위반.

    code는 HTTP 응답 본문의 "code"로 그대로 노출된다.
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
