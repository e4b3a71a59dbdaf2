"""Exception Handlers.

도메인/애플리케이션 예외를 {"detail", "code"} JSON 응답으로 변환합니다.
Broker 장애는 NOT_FOUND와 구분하여 503으로 응답합니다.
내부 원인(exc.reason)은 로그에만 기록하고 응답에는 고정 문구만 보냅니다.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from insect_jobs.application.common.exceptions import ApplicationError, QueueUnavailableError
from insect_jobs.domain.exceptions import DomainError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "5"


def _error_response(status_code: int, exc: DomainError | ApplicationError, **kwargs) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        **kwargs,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """예외 핸들러 등록."""

    @app.exception_handler(QueueUnavailableError)
    async def queue_unavailable_handler(request: Request, exc: QueueUnavailableError):
        logger.error(
            "job_queue_unavailable",
            extra={"path": request.url.path, "error": exc.message, "reason": exc.reason},
        )
        return _error_response(503, exc, headers={"Retry-After": RETRY_AFTER_SECONDS})

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return _error_response(400, exc)

    @app.exception_handler(ApplicationError)
    async def application_error_handler(request: Request, exc: ApplicationError):
        logger.error(
            "application_error",
            extra={
                "path": request.url.path,
                "code": exc.code,
                "error": exc.message,
                "reason": exc.reason,
            },
        )
        return _error_response(500, exc)
