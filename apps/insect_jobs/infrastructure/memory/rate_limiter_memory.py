"""In-memory Claim Rate Limiter (sliding log)."""

from __future__ import annotations

from collections import deque

from insect_jobs.application.ports.rate_limiter import (
    ClaimRateLimiterPort,
    RateLimitDecision,
)


class InMemoryClaimRateLimiter(ClaimRateLimiterPort):
    """프로세스 내 sliding log Rate Limiter."""

    def __init__(self, max_claims: int = 10, duration_ms: int = 1000) -> None:
        if max_claims < 1 or duration_ms < 1:
            raise ValueError("max_claims and duration_ms must be positive")
        self._max = max_claims
        self._duration_ms = duration_ms
        self._log: deque[int] = deque()

    async def acquire(self, now: int) -> RateLimitDecision:
        while self._log and self._log[0] <= now - self._duration_ms:
            self._log.popleft()

        if len(self._log) < self._max:
            self._log.append(now)
            return RateLimitDecision(allowed=True)

        retry_after = self._log[0] + self._duration_ms - now
        return RateLimitDecision(allowed=False, retry_after_ms=max(1, retry_after))
