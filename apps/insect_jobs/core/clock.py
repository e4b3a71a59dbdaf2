"""Epoch millisecond 시각 유틸리티.

Envelope 타임스탬프는 Redis Hash/ZSET score와 맞추기 위해 epoch ms 정수로 보관하고,
외부 응답(projection)에서만 datetime으로 변환한다.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """현재 시각 (epoch ms)."""
    return int(time.time() * 1000)


def from_epoch_ms(value: int | None) -> datetime | None:
    """epoch ms → UTC datetime (None 유지)."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
