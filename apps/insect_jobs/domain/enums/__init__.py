"""Job Queue Enums."""

from insect_jobs.domain.enums.job_state import JobState

__all__ = ["JobState"]
