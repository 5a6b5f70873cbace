"""Remote job status module."""

from sermon_audio.core.jobs.client import (
    DebugJobStatusClient,
    Failed,
    Finished,
    HttpJobStatusClient,
    JobResult,
    JobStatus,
    JobStatusClient,
    NotFinished,
    get_job_status_client,
)
from sermon_audio.core.jobs.kinds import JobKind

__all__ = [
    "JobKind",
    "JobStatus",
    "JobStatusClient",
    "JobResult",
    "NotFinished",
    "Finished",
    "Failed",
    "HttpJobStatusClient",
    "DebugJobStatusClient",
    "get_job_status_client",
]
