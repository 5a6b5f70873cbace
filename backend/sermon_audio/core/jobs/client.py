"""Clients that query remote processing jobs for their status."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from sermon_audio.config import Settings
from sermon_audio.core.exceptions import (
    ConfigurationError,
    MalformedJobResponseError,
    TerminalJobError,
    TransientJobError,
)
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class JobResult:
    """Output of a finished job."""

    output_ref: str  # storage key of the job output
    duration: float | None = None  # seconds; reported by cleaning jobs


@dataclass(frozen=True)
class NotFinished:
    """Job is still pending or running."""


@dataclass(frozen=True)
class Finished:
    """Job completed successfully."""

    result: JobResult


@dataclass(frozen=True)
class Failed:
    """Job ended without producing output."""

    reason: str


JobStatus = NotFinished | Finished | Failed


class JobStatusClient(ABC):
    """Abstract base class for job status sources."""

    @abstractmethod
    def query_status(self, job_id: str) -> JobStatus:
        """
        Ask for the current status of a job.

        Raises:
            TransientJobError: The endpoint could not be reached or is overloaded
            TerminalJobError: The endpoint does not know the job id
            MalformedJobResponseError: The response could not be interpreted
        """
        ...


class HttpJobStatusClient(JobStatusClient):
    """
    Queries a job results endpoint over HTTP.

    The endpoint is called as ``GET <endpoint>?job-id=<id>`` and answers with
    a JSON object such as::

        {"status": "completed", "output_sub_key": "cleaned/abc.m4a", "audio_duration": 1832.4}

    ``status`` is one of pending, in_progress, completed or failed.
    """

    PENDING_STATUSES = {"pending", "in_progress"}

    def __init__(
        self,
        endpoint: str,
        connect_timeout: float | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self.transport = transport

    def query_status(self, job_id: str) -> JobStatus:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.endpoint, params={"job-id": job_id})
        except httpx.TimeoutException as e:
            raise TransientJobError(f"Timed out querying job {job_id}: {e}") from e
        except httpx.TransportError as e:
            raise TransientJobError(f"Could not reach job results endpoint for job {job_id}: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientJobError(
                f"Job results endpoint answered {response.status_code} for job {job_id}"
            )
        if response.status_code >= 400:
            raise TerminalJobError(
                f"Job results endpoint rejected job {job_id} with status {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedJobResponseError(f"Response for job {job_id} is not JSON") from e

        return self._parse_body(job_id, body)

    def _parse_body(self, job_id: str, body: Any) -> JobStatus:
        if not isinstance(body, dict):
            raise MalformedJobResponseError(f"Response for job {job_id} is not a JSON object")

        status = body.get("status")
        if status in self.PENDING_STATUSES:
            return NotFinished()

        if status == "failed":
            reason = body.get("reason")
            return Failed(reason=str(reason) if reason else "unknown")

        if status == "completed":
            output_ref = body.get("output_sub_key")
            if not isinstance(output_ref, str) or not output_ref:
                raise MalformedJobResponseError(f"Completed job {job_id} has no output_sub_key")

            duration = body.get("audio_duration")
            if duration is not None and (isinstance(duration, bool) or not isinstance(duration, (int, float))):
                raise MalformedJobResponseError(f"Completed job {job_id} has a non-numeric audio_duration")

            return Finished(
                JobResult(
                    output_ref=output_ref,
                    duration=float(duration) if duration is not None else None,
                )
            )

        raise MalformedJobResponseError(f"Unknown status {status!r} for job {job_id}")


class DebugJobStatusClient(JobStatusClient):
    """Reports every job as finished without contacting any endpoint."""

    def query_status(self, job_id: str) -> JobStatus:
        logger.debug("debug_job_status", job_id=job_id)
        return Finished(JobResult(output_ref=job_id, duration=0.0))


def get_job_status_client(kind: JobKind, settings: Settings) -> JobStatusClient:
    """
    Build the status client for a job kind from settings.

    Raises:
        ConfigurationError: The endpoint for the kind is not configured
    """
    if settings.debug_mode:
        return DebugJobStatusClient()

    endpoint = getattr(settings, f"{kind.value}_job_results_endpoint")
    if not endpoint:
        raise ConfigurationError(f"{kind.value}_job_results_endpoint is not configured")

    return HttpJobStatusClient(
        endpoint=endpoint,
        connect_timeout=settings.connect_timeout,
        timeout=settings.endpoint_timeout,
    )
