"""Job Queue Ports."""

from insect_jobs.application.ports.job_broker import (
    ClaimedJob,
    Delivery,
    JobBrokerPort,
    ReclaimOutcome,
)
from insect_jobs.application.ports.rate_limiter import (
    ClaimRateLimiterPort,
    RateLimitDecision,
)
from insect_jobs.application.ports.record_store import RecordStorePort

__all__ = [
    "ClaimRateLimiterPort",
    "ClaimedJob",
    "Delivery",
    "JobBrokerPort",
    "RateLimitDecision",
    "ReclaimOutcome",
    "RecordStorePort",
]
