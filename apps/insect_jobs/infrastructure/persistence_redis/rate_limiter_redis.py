"""Redis Claim Rate Limiter.

Sliding Log 알고리즘. 모든 Worker 인스턴스가 같은 ZSet을 공유하므로
limit은 인스턴스 수와 무관하게 전역으로 적용된다.

윈도우 시각은 스크립트 안에서 Redis TIME으로 읽는다. Worker마다 시계가
어긋나 있어도 한 인스턴스가 다른 인스턴스의 기록을 밀어내지 못한다.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from insect_jobs.application.common.exceptions import QueueUnavailableError
from insect_jobs.application.ports.rate_limiter import (
    ClaimRateLimiterPort,
    RateLimitDecision,
)
from insect_jobs.infrastructure.persistence_redis.scripts import RATE_LIMIT_SCRIPT

if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLAIMS = 10
DEFAULT_DURATION_MS = 1000


class RedisClaimRateLimiter(ClaimRateLimiterPort):
    """Redis 기반 claim Rate Limiter."""

    def __init__(
        self,
        redis_client: "aioredis.Redis",
        key: str,
        max_claims: int = DEFAULT_MAX_CLAIMS,
        duration_ms: int = DEFAULT_DURATION_MS,
    ) -> None:
        if max_claims < 1 or duration_ms < 1:
            raise ValueError("max_claims and duration_ms must be positive")
        self._key = key
        self._max = max_claims
        self._duration_ms = duration_ms
        self._script = redis_client.register_script(RATE_LIMIT_SCRIPT)

    async def acquire(self, now: int) -> RateLimitDecision:
        # now는 포트 계약상 받지만 판정에는 Redis 서버 시각만 사용
        try:
            allowed, retry_after = await self._script(
                keys=[self._key],
                args=[self._duration_ms, self._max, uuid.uuid4().hex],
            )
        except RedisError as e:
            raise QueueUnavailableError(str(e)) from e

        decision = RateLimitDecision(allowed=bool(allowed), retry_after_ms=int(retry_after))
        if not decision.allowed:
            logger.debug(
                "claim_rate_limited",
                extra={"retry_after_ms": decision.retry_after_ms, "limit": self._max},
            )
        return decision
