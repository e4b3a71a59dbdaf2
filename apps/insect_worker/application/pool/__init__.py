"""Worker Pool."""

from insect_worker.application.pool.exceptions import AttemptTimeoutError
from insect_worker.application.pool.handler import JobHandler
from insect_worker.application.pool.listeners import (
    CompositeListener,
    LoggingListener,
    WorkerPoolListener,
)
from insect_worker.application.pool.maintenance import DelayedJobPromoter, StalledJobReclaimer
from insect_worker.application.pool.progress import ProgressReporter
from insect_worker.application.pool.worker_pool import WorkerPool

__all__ = [
    "AttemptTimeoutError",
    "CompositeListener",
    "DelayedJobPromoter",
    "JobHandler",
    "LoggingListener",
    "ProgressReporter",
    "StalledJobReclaimer",
    "WorkerPool",
    "WorkerPoolListener",
]
