"""HTTP Controller 테스트.

multipart 업로드 검증, 상태 조회 응답 형태, 이력 인증 헤더, 예외 → HTTP 매핑을 검증합니다.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from insect.application.history.queries import GetHistoryQuery
from insect.application.identify.commands import EnqueueIdentificationCommand
from insect.application.status.queries import GetJobStatusQuery
from insect.presentation.http.controllers import health_router, insect_router
from insect.presentation.http.errors import register_exception_handlers
from insect.setup.config import Settings, get_settings
from insect.setup.dependencies import (
    get_enqueue_command,
    get_history_query,
    get_job_status_query,
    get_queue_ping,
)
from insect_jobs.application.common.exceptions import QueueUnavailableError, RecordStoreError


def create_test_app(
    broker,
    codec,
    records=None,
    settings: Settings | None = None,
    queue_ready: bool = True,
) -> FastAPI:
    """테스트용 FastAPI 앱 (의존성 오버라이드 포함)."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(insect_router, prefix="/api/v1")

    settings = settings or Settings(_env_file=None)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_enqueue_command] = lambda: EnqueueIdentificationCommand(
        broker=broker, codec=codec
    )
    app.dependency_overrides[get_job_status_query] = lambda: GetJobStatusQuery(broker)
    app.dependency_overrides[get_queue_ping] = lambda: AsyncMock(return_value=queue_ready)
    if records is not None:
        app.dependency_overrides[get_history_query] = lambda: GetHistoryQuery(records)
    return app


@pytest.fixture
def client(broker, codec, mock_records):
    return TestClient(create_test_app(broker, codec, mock_records))


class TestIdentifyController:
    """POST /api/v1/insect/identify 테스트."""

    def test_accepted_with_status_url(self, client, broker, jpeg_bytes):
        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("bug.jpg", jpeg_bytes, "image/jpeg")},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["message"] == "Identification job queued successfully"
        assert body["job_id"].startswith("insect-")
        assert body["status_url"] == f"/api/v1/insect/status/{body['job_id']}"
        assert broker.waiting_count() == 1

    def test_gateway_header_takes_precedence(self, client, broker, codec, jpeg_bytes):
        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("bug.jpg", jpeg_bytes, "image/jpeg")},
            data={"user_id": "form-user"},
            headers={"X-User-ID": "gateway-user"},
        )

        job_id = response.json()["job_id"]
        status = client.get(f"/api/v1/insect/status/{job_id}")
        assert status.status_code == 200
        envelope = broker._jobs[job_id]
        assert codec.decode(envelope.payload).user_id == "gateway-user"

    def test_form_user_id_used_without_header(self, client, broker, codec, jpeg_bytes):
        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("bug.jpg", jpeg_bytes, "image/jpeg")},
            data={"user_id": "form-user"},
        )

        envelope = broker._jobs[response.json()["job_id"]]
        assert codec.decode(envelope.payload).user_id == "form-user"

    def test_missing_image_rejected(self, client, broker):
        response = client.post("/api/v1/insect/identify", data={"user_id": "u"})

        assert response.status_code == 400
        assert broker.waiting_count() == 0

    def test_non_image_rejected(self, client, broker):
        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Only image files are allowed"
        assert broker.waiting_count() == 0

    def test_oversized_image_rejected(self, broker, codec):
        settings = Settings(_env_file=None, max_upload_bytes=1024)
        client = TestClient(create_test_app(broker, codec, settings=settings))

        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("big.jpg", b"\xff" * 1025, "image/jpeg")},
        )

        assert response.status_code == 413
        assert broker.waiting_count() == 0

    def test_empty_image_is_payload_error(self, client):
        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("empty.jpg", b"", "image/jpeg")},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PAYLOAD"

    def test_queue_unavailable_is_503(self, codec, jpeg_bytes):
        broker = MagicMock()
        cause = "Error 111 connecting to redis-queue.internal.svc:6379. Connection refused."
        broker.add = AsyncMock(side_effect=QueueUnavailableError(cause))
        client = TestClient(create_test_app(broker, codec))

        response = client.post(
            "/api/v1/insect/identify",
            files={"image": ("bug.jpg", jpeg_bytes, "image/jpeg")},
        )

        assert response.status_code == 503
        assert response.json()["code"] == "QUEUE_UNAVAILABLE"
        assert response.headers["Retry-After"] == "5"
        assert response.json()["detail"] == "Job queue is unavailable"
        assert "redis-queue.internal.svc" not in response.text


class TestStatusController:
    """GET /api/v1/insect/status/{job_id} 테스트."""

    def test_waiting_status(self, client, jpeg_bytes):
        job_id = client.post(
            "/api/v1/insect/identify",
            files={"image": ("bug.jpg", jpeg_bytes, "image/jpeg")},
        ).json()["job_id"]

        response = client.get(f"/api/v1/insect/status/{job_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Job status retrieved successfully"
        assert body["data"]["id"] == job_id
        assert body["data"]["state"] == "waiting"
        assert body["data"]["progress"] == 0
        assert body["data"]["result"] is None
        assert body["data"]["finished_at"] is None

    def test_unknown_job_is_404(self, client):
        response = client.get("/api/v1/insect/status/nonexistent-123")

        assert response.status_code == 404
        assert response.json()["detail"] == "Job not found"


class TestHistoryController:
    """GET /api/v1/insect/history 테스트."""

    def test_requires_user_header(self, client, mock_records):
        response = client.get("/api/v1/insect/history")

        assert response.status_code == 401
        mock_records.find.assert_not_awaited()

    def test_returns_projected_records(self, client, mock_records):
        mock_records.find.return_value = [
            {
                "id": "rec-1",
                "name": "Ladybird",
                "scientific_name": "Coccinella septempunctata",
                "description": "Red with black spots",
                "image_url": "https://cdn.example.com/a.jpg",
                "confidence": 0.9,
                "user_id": "user-1",
                "additional_info": {"diet": "aphids"},
                "detected_at": "2026-01-02T00:00:00+00:00",
                "created_at": "2026-01-02T00:00:01+00:00",
            }
        ]

        response = client.get("/api/v1/insect/history", headers={"X-User-ID": "user-1"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data == [
            {
                "id": "rec-1",
                "name": "Ladybird",
                "scientific_name": "Coccinella septempunctata",
                "description": "Red with black spots",
                "image_url": "https://cdn.example.com/a.jpg",
                "confidence": 0.9,
                "detected_at": "2026-01-02T00:00:00+00:00",
                "created_at": "2026-01-02T00:00:01+00:00",
            }
        ]


    def test_record_store_failure_hides_cause(self, client, mock_records):
        mock_records.find.side_effect = RecordStoreError(
            "(asyncpg.exceptions.ConnectionDoesNotExistError) db.internal:5432 closed"
        )

        response = client.get("/api/v1/insect/history", headers={"X-User-ID": "user-1"})

        assert response.status_code == 500
        assert response.json() == {
            "detail": "Failed to access identification records",
            "code": "RECORD_STORE_ERROR",
        }
        assert "db.internal" not in response.text


class TestHealthController:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["service"] == "insect-api"

    def test_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "queue": "ok"}

    def test_not_ready_without_queue(self, broker, codec):
        client = TestClient(create_test_app(broker, codec, queue_ready=False))

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["queue"] == "unavailable"
