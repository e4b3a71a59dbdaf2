"""Status Queries."""

from insect.application.status.queries.get_job_status import GetJobStatusQuery, JobStatusView

__all__ = ["GetJobStatusQuery", "JobStatusView"]
