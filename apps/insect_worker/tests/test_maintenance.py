"""DelayedJobPromoter / StalledJobReclaimer 테스트."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from insect_jobs.application.ports import ReclaimOutcome
from insect_jobs.domain.enums import JobState
from insect_worker.application.pool import DelayedJobPromoter, StalledJobReclaimer

NOW = 1_700_000_000_000


@pytest.fixture
def mock_broker():
    broker = MagicMock()
    broker.promote_delayed = AsyncMock(return_value=2)
    broker.reclaim_stalled = AsyncMock(return_value=[])
    return broker


class TestDelayedJobPromoter:
    @pytest.mark.asyncio
    async def test_promote_once(self, mock_broker):
        promoter = DelayedJobPromoter(mock_broker, batch_size=50, clock=lambda: NOW)

        assert await promoter.promote_once() == 2
        mock_broker.promote_delayed.assert_awaited_once_with(NOW, 50)


class TestStalledJobReclaimer:
    @pytest.mark.asyncio
    async def test_reclaim_once(self, mock_broker):
        mock_broker.reclaim_stalled.return_value = [
            ReclaimOutcome(job_id="job-1", state=JobState.WAITING, attempts=1),
            ReclaimOutcome(job_id="job-2", state=JobState.FAILED, attempts=3),
        ]
        reclaimer = StalledJobReclaimer(
            mock_broker,
            consumer_name="worker-1",
            min_idle_ms=30_000,
            count=10,
            clock=lambda: NOW,
        )

        assert await reclaimer.reclaim_once() == 2
        mock_broker.reclaim_stalled.assert_awaited_once_with("worker-1", 30_000, NOW, 10)
