"""Insect API Dependencies - FastAPI Dependency Injection."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Awaitable, Callable

from fastapi import Depends
from redis.exceptions import RedisError

from insect.application.history.queries import GetHistoryQuery
from insect.application.identify.commands import EnqueueIdentificationCommand
from insect.application.status.queries import GetJobStatusQuery
from insect.setup.config import Settings, get_settings
from insect_jobs.application.codec import PayloadCodec
from insect_jobs.application.ports import JobBrokerPort, RecordStorePort
from insect_jobs.infrastructure.persistence_postgres import (
    RecordStoreSQLA,
    create_session_factory,
)
from insect_jobs.infrastructure.persistence_redis import (
    QueueKeys,
    RedisJobBroker,
    build_async_client,
)

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncEngine

# ─────────────────────────────────────────────────────────────────────────────
# Infrastructure Dependencies
# ─────────────────────────────────────────────────────────────────────────────


@lru_cache
def get_redis() -> "aioredis.Redis":
    """Job Queue Redis 클라이언트 싱글톤."""
    return build_async_client(get_settings().redis_url)


@lru_cache
def get_broker() -> JobBrokerPort:
    """Job Broker 인스턴스 반환."""
    settings = get_settings()
    return RedisJobBroker(
        get_redis(),
        keys=QueueKeys(settings.queue_prefix),
        consumer_group=settings.consumer_group,
    )


@lru_cache
def get_payload_codec() -> PayloadCodec:
    return PayloadCodec()


@lru_cache
def _get_database() -> tuple["AsyncEngine", object]:
    settings = get_settings()
    return create_session_factory(settings.database_url, echo=settings.database_echo)


@lru_cache
def get_record_store() -> RecordStorePort:
    """Record Store 인스턴스 반환 (이력 조회용)."""
    return RecordStoreSQLA(_get_database()[1])


def get_queue_ping() -> Callable[[], Awaitable[bool]]:
    """Readiness용 Redis PING."""

    async def _ping() -> bool:
        try:
            return bool(await get_redis().ping())
        except RedisError:
            return False

    return _ping


async def close_resources() -> None:
    """생성된 연결만 정리."""
    if get_broker.cache_info().currsize:
        await get_broker().close()
    elif get_redis.cache_info().currsize:
        await get_redis().aclose()
    if _get_database.cache_info().currsize:
        await _get_database()[0].dispose()


# ─────────────────────────────────────────────────────────────────────────────
# Application Dependencies (Commands / Queries)
# ─────────────────────────────────────────────────────────────────────────────


def get_enqueue_command(
    broker: Annotated[JobBrokerPort, Depends(get_broker)],
    codec: Annotated[PayloadCodec, Depends(get_payload_codec)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EnqueueIdentificationCommand:
    """Enqueue Identification Command 인스턴스 반환."""
    return EnqueueIdentificationCommand(
        broker=broker,
        codec=codec,
        retry_policy=settings.retry_policy(),
        retention=settings.retention_policy(),
    )


def get_job_status_query(
    broker: Annotated[JobBrokerPort, Depends(get_broker)],
) -> GetJobStatusQuery:
    """Get Job Status Query 인스턴스 반환."""
    return GetJobStatusQuery(broker=broker)


def get_history_query(
    records: Annotated[RecordStorePort, Depends(get_record_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> GetHistoryQuery:
    """Get History Query 인스턴스 반환."""
    return GetHistoryQuery(records=records, limit=settings.history_limit)


# ─────────────────────────────────────────────────────────────────────────────
# Type Aliases for Dependency Injection
# ─────────────────────────────────────────────────────────────────────────────


SettingsDep = Annotated[Settings, Depends(get_settings)]
QueuePingDep = Annotated[Callable[[], Awaitable[bool]], Depends(get_queue_ping)]
EnqueueCommandDep = Annotated[EnqueueIdentificationCommand, Depends(get_enqueue_command)]
GetJobStatusQueryDep = Annotated[GetJobStatusQuery, Depends(get_job_status_query)]
GetHistoryQueryDep = Annotated[GetHistoryQuery, Depends(get_history_query)]
