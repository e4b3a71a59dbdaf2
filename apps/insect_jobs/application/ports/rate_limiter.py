"""Claim Rate Limiter Port.

모든 Worker 인스턴스가 공유하는 claim 처리량 제한 (rolling window).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Rate Limit 판정.

    Attributes:
        allowed: claim 허용 여부
        retry_after_ms: 거부 시 다음 시도까지 대기 시간
    """

    allowed: bool
    retry_after_ms: int = 0


class ClaimRateLimiterPort(ABC):
    """Claim Rate Limiter 포트."""

    @abstractmethod
    async def acquire(self, now: int) -> RateLimitDecision:
        """슬롯 하나 획득 시도.

        Args:
            now: 호출 측 현재 시각 (epoch ms). 공유 저장소 기반 구현은
                저장소 시각을 우선할 수 있다.
        """
