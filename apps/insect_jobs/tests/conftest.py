"""insect_jobs 테스트 설정."""

from __future__ import annotations

import pytest

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.domain.entities import JobEnvelope
from insect_jobs.domain.value_objects import ImagePayload, RetryPolicy


class FakeClock:
    """테스트용 수동 시계 (epoch ms)."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec():
    return PayloadCodec()


@pytest.fixture
def sample_payload():
    return ImagePayload(
        image_bytes=b"\x89PNG\r\n\x1a\n" + bytes(range(256)),
        mime_type="image/png",
        original_file_name="beetle.png",
        user_id="user-1",
    )


@pytest.fixture
def make_envelope(codec, sample_payload):
    def _make(job_id: str = "insect-1-abc", max_attempts: int = 3, **kwargs) -> JobEnvelope:
        return JobEnvelope(
            id=job_id,
            payload=codec.encode(sample_payload),
            retry_policy=RetryPolicy(max_attempts=max_attempts, backoff_delay_ms=2000),
            enqueued_at=1_700_000_000_000,
            **kwargs,
        )

    return _make
