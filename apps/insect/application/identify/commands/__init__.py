"""Identify Commands."""

from insect.application.identify.commands.enqueue_identification import (
    EnqueueIdentificationCommand,
    EnqueueIdentificationRequest,
    generate_job_id,
)

__all__ = [
    "EnqueueIdentificationCommand",
    "EnqueueIdentificationRequest",
    "generate_job_id",
]
