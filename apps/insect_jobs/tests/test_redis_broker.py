"""RedisJobBroker / RedisClaimRateLimiter 테스트 (AsyncMock Redis)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError, ResponseError

from insect_jobs.application.common.exceptions import QueueUnavailableError
from insect_jobs.application.ports import ClaimedJob, Delivery
from insect_jobs.domain.enums import JobState
from insect_jobs.infrastructure.persistence_redis import (
    QueueKeys,
    RedisClaimRateLimiter,
    RedisJobBroker,
)
from insect_jobs.infrastructure.persistence_redis.scripts import (
    ACTIVATE_SCRIPT,
    COMMIT_SCRIPT,
    PROGRESS_SCRIPT,
    PROMOTE_SCRIPT,
    RATE_LIMIT_SCRIPT,
    REQUEUE_STALLED_SCRIPT,
)

NOW = 1_700_000_000_000


@pytest.fixture
def scripts():
    return {}


@pytest.fixture
def pipe():
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, "1-0"])
    return pipe


@pytest.fixture
def mock_redis(scripts, pipe):
    mock = AsyncMock()

    def register(script):
        scripts[script] = AsyncMock(return_value=1)
        return scripts[script]

    mock.register_script = register
    mock.pipeline = MagicMock(return_value=pipe)
    return mock


@pytest.fixture
def broker(mock_redis):
    return RedisJobBroker(mock_redis, keys=QueueKeys("test:q"), consumer_group="g")


def _flatten(mapping):
    flat = []
    for key, value in mapping.items():
        flat.extend((key, value))
    return flat


class TestSetup:
    @pytest.mark.asyncio
    async def test_creates_group(self, broker, mock_redis):
        await broker.setup()
        mock_redis.xgroup_create.assert_awaited_once_with("test:q:wait", "g", id="0", mkstream=True)

    @pytest.mark.asyncio
    async def test_ignores_busygroup(self, broker, mock_redis):
        mock_redis.xgroup_create.side_effect = ResponseError("BUSYGROUP already exists")
        await broker.setup()


class TestAdd:
    @pytest.mark.asyncio
    async def test_writes_hash_and_stream_in_transaction(self, broker, mock_redis, pipe, make_envelope):
        envelope = make_envelope("job-1")

        await broker.add(envelope)

        mock_redis.pipeline.assert_called_once_with(transaction=True)
        pipe.hset.assert_called_once_with("test:q:job:job-1", mapping=envelope.to_mapping())
        pipe.xadd.assert_called_once_with("test:q:wait", {"job_id": "job-1"})
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_error_is_queue_unavailable(self, broker, pipe, make_envelope):
        pipe.execute.side_effect = ConnectionError("refused")

        with pytest.raises(QueueUnavailableError):
            await broker.add(make_envelope("job-1"))


class TestGet:
    @pytest.mark.asyncio
    async def test_missing_is_none(self, broker, mock_redis):
        mock_redis.hgetall.return_value = {}
        assert await broker.get("nope") is None

    @pytest.mark.asyncio
    async def test_returns_envelope(self, broker, mock_redis, make_envelope):
        mock_redis.hgetall.return_value = make_envelope("job-1").to_mapping()

        envelope = await broker.get("job-1")

        assert envelope.id == "job-1"
        assert envelope.state is JobState.WAITING

    @pytest.mark.asyncio
    async def test_connection_error_is_not_not_found(self, broker, mock_redis):
        mock_redis.hgetall.side_effect = ConnectionError("down")
        with pytest.raises(QueueUnavailableError):
            await broker.get("job-1")


class TestClaim:
    @pytest.mark.asyncio
    async def test_reserve_parses_stream_entry(self, broker, mock_redis):
        mock_redis.xreadgroup.return_value = [["test:q:wait", [("1-0", {"job_id": "job-1"})]]]

        delivery = await broker.reserve("worker-1", block_ms=100)

        assert delivery == Delivery(job_id="job-1", token="1-0", consumer="worker-1")
        kwargs = mock_redis.xreadgroup.await_args.kwargs
        assert kwargs["count"] == 1
        assert kwargs["streams"] == {"test:q:wait": ">"}

    @pytest.mark.asyncio
    async def test_reserve_empty(self, broker, mock_redis):
        mock_redis.xreadgroup.return_value = []
        assert await broker.reserve("worker-1", block_ms=100) is None

    @pytest.mark.asyncio
    async def test_activate_builds_claim(self, broker, scripts, make_envelope):
        envelope = make_envelope("job-1")
        envelope.activate(NOW)
        scripts[ACTIVATE_SCRIPT].return_value = _flatten(envelope.to_mapping())
        delivery = Delivery(job_id="job-1", token="1-0", consumer="worker-1")

        claim = await broker.activate(delivery, NOW)

        assert claim.attempt == 1
        assert claim.envelope.state is JobState.ACTIVE
        scripts[ACTIVATE_SCRIPT].assert_awaited_once_with(keys=["test:q:job:job-1"], args=[NOW])

    @pytest.mark.asyncio
    async def test_activate_not_waiting(self, broker, scripts):
        scripts[ACTIVATE_SCRIPT].return_value = None
        delivery = Delivery(job_id="job-1", token="1-0", consumer="worker-1")
        assert await broker.activate(delivery, NOW) is None


class TestCommit:
    @pytest.fixture
    def claim(self, make_envelope):
        envelope = make_envelope("job-1")
        envelope.activate(NOW)
        return ClaimedJob(
            delivery=Delivery(job_id="job-1", token="1-0", consumer="worker-1"),
            envelope=envelope,
            attempt=1,
        )

    @pytest.mark.asyncio
    async def test_completed_args(self, broker, scripts, claim):
        envelope = claim.envelope
        envelope.complete({"id": "rec-1"}, NOW + 5)

        assert await broker.commit(claim, envelope) is True

        call = scripts[COMMIT_SCRIPT].await_args.kwargs
        assert call["keys"] == [
            "test:q:job:job-1",
            "test:q:wait",
            "test:q:delayed",
            "test:q:completed",
        ]
        args = call["args"]
        assert args[:9] == ["g", "1-0", "job-1", 1, "completed", NOW + 5, 3600, 100, "test:q:job:"]
        fields = dict(zip(args[9::2], args[10::2]))
        assert fields["state"] == "completed"
        assert fields["progress"] == "100"
        assert "attempts" not in fields

    @pytest.mark.asyncio
    async def test_delayed_uses_backoff_score(self, broker, scripts, claim):
        envelope = claim.envelope
        envelope.fail("boom", NOW)

        await broker.commit(claim, envelope)

        args = scripts[COMMIT_SCRIPT].await_args.kwargs["args"]
        assert args[4] == "delayed"
        assert args[5] == NOW + 2000

    @pytest.mark.asyncio
    async def test_stale_commit_returns_false(self, broker, scripts, claim):
        scripts[COMMIT_SCRIPT].return_value = 0
        envelope = claim.envelope
        envelope.complete({}, NOW)
        assert await broker.commit(claim, envelope) is False

    @pytest.mark.asyncio
    async def test_rejects_non_terminal_state(self, broker, claim):
        with pytest.raises(ValueError):
            await broker.commit(claim, claim.envelope)

    @pytest.mark.asyncio
    async def test_progress_passes_attempt(self, broker, scripts, claim):
        await broker.update_progress(claim, 30)
        scripts[PROGRESS_SCRIPT].assert_awaited_once_with(keys=["test:q:job:job-1"], args=[1, 30])


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_promote(self, broker, scripts):
        scripts[PROMOTE_SCRIPT].return_value = 2

        assert await broker.promote_delayed(NOW, limit=50) == 2
        scripts[PROMOTE_SCRIPT].assert_awaited_once_with(
            keys=["test:q:delayed", "test:q:wait"],
            args=[NOW, 50, "test:q:job:"],
        )

    @pytest.mark.asyncio
    async def test_reclaim_stalled(self, broker, mock_redis, scripts):
        mock_redis.xautoclaim.return_value = [
            "0-0",
            [("1-0", {"job_id": "job-1"}), ("2-0", {"job_id": "job-2"})],
            [],
        ]
        scripts[REQUEUE_STALLED_SCRIPT].side_effect = [["waiting", 1], ["failed", 3]]

        outcomes = await broker.reclaim_stalled("reclaimer", 30_000, NOW)

        assert [(o.job_id, o.state, o.attempts) for o in outcomes] == [
            ("job-1", JobState.WAITING, 1),
            ("job-2", JobState.FAILED, 3),
        ]

    @pytest.mark.asyncio
    async def test_reclaim_without_group(self, broker, mock_redis):
        mock_redis.xautoclaim.side_effect = ResponseError("NOGROUP No such key")
        assert await broker.reclaim_stalled("reclaimer", 30_000, NOW) == []


class TestRedisRateLimiter:
    @pytest.mark.asyncio
    async def test_allowed(self, mock_redis, scripts):
        limiter = RedisClaimRateLimiter(mock_redis, key="test:q:limiter")
        scripts[RATE_LIMIT_SCRIPT].return_value = [1, 0]

        decision = await limiter.acquire(NOW)

        assert decision.allowed is True
        args = scripts[RATE_LIMIT_SCRIPT].await_args.kwargs["args"]
        assert args[:2] == [1000, 10]
        assert NOW not in args

    @pytest.mark.asyncio
    async def test_denied(self, mock_redis, scripts):
        limiter = RedisClaimRateLimiter(mock_redis, key="test:q:limiter")
        scripts[RATE_LIMIT_SCRIPT].return_value = [0, 250]

        decision = await limiter.acquire(NOW)

        assert decision.allowed is False
        assert decision.retry_after_ms == 250
