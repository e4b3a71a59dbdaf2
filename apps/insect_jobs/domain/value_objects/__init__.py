"""Job Queue Value Objects."""

from insect_jobs.domain.value_objects.image_payload import ImagePayload
from insect_jobs.domain.value_objects.policies import RetentionPolicy, RetryPolicy

__all__ = [
    "ImagePayload",
    "RetentionPolicy",
    "RetryPolicy",
]
