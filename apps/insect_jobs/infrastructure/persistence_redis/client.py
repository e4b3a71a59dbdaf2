"""Job Queue Redis Client.

API는 짧은 명령(HSET/XADD/HGETALL)만 보내고, Worker는 XREADGROUP BLOCK으로
대기하므로 소켓 타임아웃을 block 시간에 맞춰 늘려야 한다.
연결 오류 / 타임아웃은 지수 백오프로 재시도한 뒤 QueueUnavailableError로 변환된다.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError

COMMAND_SOCKET_TIMEOUT = 5.0  # seconds
BLOCKING_READ_MARGIN = 5.0  # seconds, XREADGROUP block 이후 응답 여유
CONNECT_TIMEOUT = 5.0
HEALTH_CHECK_INTERVAL = 30
QUEUE_MAX_CONNECTIONS = 50
QUEUE_COMMAND_RETRIES = 3


def socket_timeout_for(block_ms: int | None) -> float:
    """block_ms 동안 응답이 없어도 끊기지 않는 소켓 타임아웃."""
    if not block_ms:
        return COMMAND_SOCKET_TIMEOUT
    return block_ms / 1000 + BLOCKING_READ_MARGIN


def build_async_client(redis_url: str, block_ms: int | None = None) -> aioredis.Redis:
    """Job Queue용 비동기 Redis 클라이언트.

    Args:
        redis_url: Redis URL
        block_ms: Worker의 XREADGROUP block 시간. API는 None
    """
    return aioredis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_keepalive=True,
        socket_connect_timeout=CONNECT_TIMEOUT,
        socket_timeout=socket_timeout_for(block_ms),
        health_check_interval=HEALTH_CHECK_INTERVAL,
        max_connections=QUEUE_MAX_CONNECTIONS,
        retry=Retry(ExponentialBackoff(cap=1.0, base=0.05), retries=QUEUE_COMMAND_RETRIES),
        retry_on_error=[ConnectionError, TimeoutError],
    )
