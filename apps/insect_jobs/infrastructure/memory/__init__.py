"""In-memory Job Queue Adapters (local/dev/tests)."""

from insect_jobs.infrastructure.memory.job_broker_memory import InMemoryJobBroker
from insect_jobs.infrastructure.memory.rate_limiter_memory import InMemoryClaimRateLimiter

__all__ = ["InMemoryClaimRateLimiter", "InMemoryJobBroker"]
