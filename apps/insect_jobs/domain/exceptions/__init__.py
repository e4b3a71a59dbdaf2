"""Job Queue 도메인 예외."""

from insect_jobs.domain.exceptions.base import DomainError
from insect_jobs.domain.exceptions.job import (
    InvalidJobTransitionError,
    PayloadValidationError,
)

__all__ = [
    "DomainError",
    "InvalidJobTransitionError",
    "PayloadValidationError",
]
