"""Job Queue 엔티티."""

from insect_jobs.domain.entities.job_envelope import JobEnvelope

__all__ = ["JobEnvelope"]
