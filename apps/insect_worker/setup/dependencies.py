"""Dependency Injection.

Port/Adapter 패턴 기반 DI Factory.
Worker 프로세스 시작 시 Pool과 Maintenance 루프를 조립.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

import boto3

from insect_jobs.application.codec import PayloadCodec
from insect_jobs.application.ports import ClaimRateLimiterPort, JobBrokerPort, RecordStorePort
from insect_jobs.infrastructure.persistence_postgres import (
    RecordStoreSQLA,
    create_session_factory,
)
from insect_jobs.infrastructure.persistence_redis import (
    QueueKeys,
    RedisClaimRateLimiter,
    RedisJobBroker,
    build_async_client,
)
from insect_worker.application.identify.commands import IdentifyInsectCommand
from insect_worker.application.identify.ports import ClassifierPort, ObjectStoragePort
from insect_worker.application.pool import (
    DelayedJobPromoter,
    LoggingListener,
    StalledJobReclaimer,
    WorkerPool,
)
from insect_worker.infrastructure.llm.gemini import GeminiInsectClassifier
from insect_worker.infrastructure.storage import S3ObjectStorage
from insect_worker.setup.config import get_settings

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncEngine


# ============================================================
# Singleton Port Instances
# ============================================================


@lru_cache
def get_redis() -> "aioredis.Redis":
    """Job Queue Redis 클라이언트 싱글톤."""
    settings = get_settings()
    return build_async_client(settings.redis_url, block_ms=settings.block_ms)


@lru_cache
def get_queue_keys() -> QueueKeys:
    return QueueKeys(get_settings().queue_prefix)


@lru_cache
def get_broker() -> JobBrokerPort:
    """JobBroker 싱글톤."""
    settings = get_settings()
    return RedisJobBroker(
        get_redis(),
        keys=get_queue_keys(),
        consumer_group=settings.consumer_group,
    )


@lru_cache
def get_rate_limiter() -> ClaimRateLimiterPort:
    """모든 Worker 인스턴스가 공유하는 claim rate limiter."""
    settings = get_settings()
    return RedisClaimRateLimiter(
        get_redis(),
        key=get_queue_keys().limiter,
        max_claims=settings.rate_limit_max,
        duration_ms=settings.rate_limit_duration_ms,
    )


@lru_cache
def get_classifier() -> ClassifierPort:
    settings = get_settings()
    return GeminiInsectClassifier(
        model=settings.gemini_model,
        api_key=settings.get_gemini_api_key(),
    )


@lru_cache
def get_object_storage() -> ObjectStoragePort:
    settings = get_settings()
    s3_client = boto3.client("s3", region_name=settings.aws_region)
    return S3ObjectStorage(
        s3_client,
        bucket=settings.s3_bucket,
        public_base_url=settings.public_base_url,
    )


@lru_cache
def _get_database() -> tuple["AsyncEngine", object]:
    settings = get_settings()
    return create_session_factory(settings.database_url, echo=settings.database_echo)


def get_db_engine() -> "AsyncEngine":
    return _get_database()[0]


@lru_cache
def get_record_store() -> RecordStorePort:
    return RecordStoreSQLA(_get_database()[1])


# ============================================================
# Pool / Maintenance Factory
# ============================================================


def create_identify_command() -> IdentifyInsectCommand:
    return IdentifyInsectCommand(
        codec=PayloadCodec(),
        classifier=get_classifier(),
        storage=get_object_storage(),
        records=get_record_store(),
    )


def create_worker_pool() -> WorkerPool:
    settings = get_settings()
    return WorkerPool(
        broker=get_broker(),
        handler=create_identify_command(),
        rate_limiter=get_rate_limiter(),
        consumer_name=settings.consumer_name,
        concurrency=settings.concurrency,
        block_ms=settings.block_ms,
        attempt_timeout_seconds=settings.attempt_timeout_seconds,
        listener=LoggingListener(),
    )


def create_promoter() -> DelayedJobPromoter:
    return DelayedJobPromoter(
        get_broker(),
        interval_seconds=get_settings().promote_interval_seconds,
    )


def create_reclaimer() -> StalledJobReclaimer:
    settings = get_settings()
    return StalledJobReclaimer(
        get_broker(),
        consumer_name=settings.consumer_name,
        min_idle_ms=settings.stalled_min_idle_ms,
        interval_seconds=settings.stalled_interval_seconds,
    )
