"""Insect API Controller.

메인 API 엔드포인트:
- POST /insect/identify: 식별 작업 적재 (202)
- GET /insect/status/{job_id}: 작업 상태 조회
- GET /insect/history: 사용자 식별 이력
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from pydantic import BaseModel, Field

from insect.application.identify.commands import EnqueueIdentificationRequest
from insect.setup.dependencies import (
    EnqueueCommandDep,
    GetHistoryQueryDep,
    GetJobStatusQueryDep,
    SettingsDep,
)

router = APIRouter(prefix="/insect", tags=["insect"])
logger = logging.getLogger(__name__)

STATUS_PATH = "/api/v1/insect/status"


# ─────────────────────────────────────────────────────────────────────────────
# Schemas
# ─────────────────────────────────────────────────────────────────────────────


class IdentifySubmitResponse(BaseModel):
    """식별 작업 적재 응답 스키마 (202 Accepted)."""

    message: str = Field(default="Identification job queued successfully")
    job_id: str = Field(description="작업 ID (insect-{epoch_ms}-{suffix})")
    status_url: str = Field(description="상태 조회 URL")


class JobStatusData(BaseModel):
    """작업 상태 스키마."""

    id: str
    state: str
    progress: int
    attempts: int
    result: dict[str, Any] | None = None
    failure_reason: str | None = None
    enqueued_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None


class JobStatusResponse(BaseModel):
    message: str = Field(default="Job status retrieved successfully")
    data: JobStatusData


class InsectHistoryEntry(BaseModel):
    """이력 항목 스키마."""

    id: str
    name: str
    scientific_name: str
    description: str
    image_url: str
    confidence: float | None = None
    detected_at: str | None = None
    created_at: str | None = None


class HistoryResponse(BaseModel):
    message: str = Field(default="History retrieved successfully")
    data: list[InsectHistoryEntry]


# ─────────────────────────────────────────────────────────────────────────────
# User Identity (Gateway 연동)
# ─────────────────────────────────────────────────────────────────────────────


def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> str:
    """Gateway에서 주입된 X-User-ID 추출.

    Raises:
        HTTPException: X-User-ID 헤더가 없는 경우 (401)
    """
    if not x_user_id:
        raise HTTPException(
            status_code=401,
            detail="Authentication required to view history",
        )
    return x_user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────


@router.post(
    "/identify",
    status_code=202,
    response_model=IdentifySubmitResponse,
    summary="Submit insect image for async identification",
)
async def identify_insect(
    command: EnqueueCommandDep,
    settings: SettingsDep,
    image: UploadFile | None = File(None),
    user_id: str | None = Form(None),
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> IdentifySubmitResponse:
    """이미지를 식별 큐에 적재하고 job_id를 즉시 반환합니다.

    X-User-ID 헤더가 있으면 form의 user_id보다 우선합니다.
    """
    if image is None:
        raise HTTPException(status_code=400, detail="Image file is required")

    mime_type = image.content_type or ""
    if not mime_type.startswith(settings.allowed_mime_prefix):
        raise HTTPException(status_code=400, detail="Only image files are allowed")

    # 상한 + 1 바이트만 읽어 초과 여부 판단
    data = await image.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image exceeds {settings.max_upload_bytes} bytes",
        )

    job_id = await command.execute(
        EnqueueIdentificationRequest(
            image_bytes=data,
            mime_type=mime_type,
            original_file_name=image.filename or "",
            user_id=x_user_id or user_id or None,
        )
    )

    return IdentifySubmitResponse(
        job_id=job_id,
        status_url=f"{STATUS_PATH}/{job_id}",
    )


@router.get(
    "/status/{job_id}",
    response_model=JobStatusResponse,
    summary="Get identification job status",
    responses={404: {"description": "작업을 찾을 수 없음 (만료 포함)"}},
)
async def get_job_status(
    job_id: str,
    query: GetJobStatusQueryDep,
) -> JobStatusResponse:
    """작업 ID로 상태를 조회합니다."""
    view = await query.execute(job_id)

    if view is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return JobStatusResponse(
        data=JobStatusData(
            id=view.id,
            state=view.state.value,
            progress=view.progress,
            attempts=view.attempts,
            result=view.result,
            failure_reason=view.failure_reason,
            enqueued_at=view.enqueued_at,
            started_at=view.started_at,
            finished_at=view.finished_at,
        )
    )


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="Get the caller's identification history",
)
async def get_history(
    user_id: CurrentUserId,
    query: GetHistoryQueryDep,
) -> HistoryResponse:
    """사용자 식별 이력을 detected_at 최신순으로 반환합니다."""
    items = await query.execute(user_id)
    return HistoryResponse(
        data=[
            InsectHistoryEntry(
                id=item.id,
                name=item.name,
                scientific_name=item.scientific_name,
                description=item.description,
                image_url=item.image_url,
                confidence=item.confidence,
                detected_at=item.detected_at,
                created_at=item.created_at,
            )
            for item in items
        ]
    )
