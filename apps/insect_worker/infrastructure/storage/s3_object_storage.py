"""S3 Object Storage - ObjectStoragePort 구현체."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from insect_worker.application.identify.exceptions import ObjectStorageError
from insect_worker.application.identify.ports.object_storage import ObjectStoragePort

if TYPE_CHECKING:
    from botocore.client import BaseClient

logger = logging.getLogger(__name__)


class S3ObjectStorage(ObjectStoragePort):
    """S3 업로드 구현체.

    boto3 클라이언트는 동기이므로 executor에서 실행하여 이벤트 루프 블로킹을 피한다.
    """

    def __init__(
        self,
        s3_client: "BaseClient",
        bucket: str,
        public_base_url: str | None = None,
    ) -> None:
        """초기화.

        Args:
            s3_client: boto3 S3 클라이언트
            bucket: 버킷 이름
            public_base_url: 공개 URL prefix (CDN 등). 없으면 S3 virtual-hosted URL
        """
        self._s3 = s3_client
        self._bucket = bucket
        self._public_base_url = (
            public_base_url or f"https://{bucket}.s3.amazonaws.com"
        ).rstrip("/")

    async def store(self, data: bytes, destination_path: str, content_type: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(
                    self._s3.put_object,
                    Bucket=self._bucket,
                    Key=destination_path,
                    Body=data,
                    ContentType=content_type,
                ),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "image_upload_failed",
                extra={"key": destination_path, "error": str(e)},
            )
            raise ObjectStorageError(str(e)) from e

        logger.info(
            "image_uploaded",
            extra={
                "key": destination_path,
                "content_type": content_type,
                "size_bytes": len(data),
            },
        )
        return f"{self._public_base_url}/{destination_path}"
