"""S3ObjectStorage 테스트."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from insect_worker.application.identify.exceptions import ObjectStorageError
from insect_worker.infrastructure.storage import S3ObjectStorage


class TestS3ObjectStorage:
    @pytest.mark.asyncio
    async def test_put_object_and_public_url(self):
        s3 = MagicMock()
        storage = S3ObjectStorage(s3, bucket="insect-images", public_base_url="https://cdn.example.com/")

        url = await storage.store(b"data", "insects/anonymous/k/1_a.jpg", "image/jpeg")

        s3.put_object.assert_called_once_with(
            Bucket="insect-images",
            Key="insects/anonymous/k/1_a.jpg",
            Body=b"data",
            ContentType="image/jpeg",
        )
        assert url == "https://cdn.example.com/insects/anonymous/k/1_a.jpg"

    @pytest.mark.asyncio
    async def test_default_url_uses_bucket(self):
        storage = S3ObjectStorage(MagicMock(), bucket="insect-images")

        url = await storage.store(b"data", "insects/u/k/1_a.jpg", "image/jpeg")

        assert url == "https://insect-images.s3.amazonaws.com/insects/u/k/1_a.jpg"

    @pytest.mark.asyncio
    async def test_client_error_is_storage_error(self):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}},
            "PutObject",
        )
        storage = S3ObjectStorage(s3, bucket="insect-images")

        with pytest.raises(ObjectStorageError):
            await storage.store(b"data", "insects/u/k/1_a.jpg", "image/jpeg")
