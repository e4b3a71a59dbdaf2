"""insect API 테스트 설정."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.infrastructure.memory import InMemoryJobBroker


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
def broker(clock):
    return InMemoryJobBroker(clock=clock)


@pytest.fixture
def mock_records():
    """RecordStorePort Mock."""
    records = MagicMock()
    records.find = AsyncMock(return_value=[])
    return records


@pytest.fixture
def jpeg_bytes():
    return b"\xff\xd8\xff\xe0" + b"\x00" * 1020
