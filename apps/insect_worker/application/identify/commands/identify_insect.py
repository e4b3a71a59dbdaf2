"""Identify Insect Command.

claim 하나에 대한 식별 파이프라인.

Flow:
    decode payload → progress 10 → progress 30 → classify → progress 60
    → 이미지 업로드 → progress 80 → 기록 저장/재조회 → progress 90 → 결과 반환
    (completed 전이 시 Pool이 progress 100 기록)
"""

from __future__ import annotations

import logging
import uuid
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Callable

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.core.clock import from_epoch_ms, now_ms
from insect_worker.application.identify.exceptions import RecordStoreError
from insect_worker.application.pool.handler import JobHandler

if TYPE_CHECKING:
    from insect_jobs.domain.entities import JobEnvelope
    from insect_worker.application.identify.ports import (
        ClassifierPort,
        ObjectStoragePort,
        RecordStorePort,
    )
    from insect_worker.application.pool.progress import ProgressReporter

logger = logging.getLogger(__name__)

INSECTS_COLLECTION = "insects"
ANONYMOUS_OWNER = "anonymous"
DEFAULT_FILE_NAME = "image"


class IdentifyInsectCommand(JobHandler):
    """곤충 식별 파이프라인."""

    def __init__(
        self,
        codec: PayloadCodec,
        classifier: "ClassifierPort",
        storage: "ObjectStoragePort",
        records: "RecordStorePort",
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._codec = codec
        self._classifier = classifier
        self._storage = storage
        self._records = records
        self._clock = clock

    async def execute(
        self,
        envelope: "JobEnvelope",
        progress: "ProgressReporter",
    ) -> dict[str, Any]:
        payload = self._codec.decode(envelope.payload)
        progress.report(10)

        progress.report(30)
        identification = await self._classifier.classify(payload.image_bytes, payload.mime_type)
        progress.report(60)

        logger.info(
            "insect_classified",
            extra={
                "job_id": envelope.id,
                "scientific_name": identification.scientific_name,
                "confidence": identification.confidence,
            },
        )

        image_url = await self._storage.store(
            payload.image_bytes,
            self._destination_path(payload.user_id, payload.original_file_name),
            payload.mime_type,
        )
        progress.report(80)

        detected_at = from_epoch_ms(self._clock())
        record_id = await self._records.insert(
            INSECTS_COLLECTION,
            {
                "name": identification.name,
                "scientific_name": identification.scientific_name,
                "description": identification.description,
                "image_url": image_url,
                "confidence": identification.confidence,
                "additional_info": identification.additional_info or None,
                "user_id": payload.user_id,
                "detected_at": detected_at.isoformat(),
            },
        )

        record = await self._records.get(INSECTS_COLLECTION, record_id)
        if record is None:
            raise RecordStoreError(f"record {record_id} not found after insert")
        progress.report(90)

        return {
            "id": record["id"],
            "name": record["name"],
            "scientific_name": record["scientific_name"],
            "description": record.get("description") or "",
            "image_url": record.get("image_url") or "",
            "confidence": record.get("confidence"),
            "detected_at": record.get("detected_at"),
            "created_at": record.get("created_at"),
        }

    def _destination_path(self, user_id: str | None, original_file_name: str) -> str:
        owner = user_id or ANONYMOUS_OWNER
        file_name = PurePosixPath(original_file_name).name or DEFAULT_FILE_NAME
        return f"insects/{owner}/{uuid.uuid4().hex}/{self._clock()}_{file_name}"
