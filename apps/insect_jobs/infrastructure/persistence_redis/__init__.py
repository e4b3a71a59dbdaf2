"""Redis Job Queue Adapters."""

from insect_jobs.infrastructure.persistence_redis.client import build_async_client
from insect_jobs.infrastructure.persistence_redis.job_broker_redis import RedisJobBroker
from insect_jobs.infrastructure.persistence_redis.keys import QueueKeys
from insect_jobs.infrastructure.persistence_redis.rate_limiter_redis import (
    RedisClaimRateLimiter,
)

__all__ = [
    "QueueKeys",
    "RedisClaimRateLimiter",
    "RedisJobBroker",
    "build_async_client",
]
