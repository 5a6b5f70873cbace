"""Exception hierarchy for the refresh service.

Callers decide retry policy from the branch an exception belongs to:
TransientError is retried, TerminalError resolves the job as failed,
ConfigurationError and InvariantViolationError are never retried.
"""


class SermonAudioError(Exception):
    """Base class for all errors raised by this package."""


class TransientError(SermonAudioError):
    """Temporary failure talking to a collaborator; the unit of work may be retried."""


class TransientJobError(TransientError):
    """Network, timeout or 5xx failure while querying a job results endpoint."""


class TransientStorageError(TransientError):
    """Temporary failure reading from or writing to transcript storage."""


class TerminalError(SermonAudioError):
    """Failure that would repeat on every retry."""


class TerminalJobError(TerminalError):
    """The job results endpoint rejected the job id."""


class MalformedJobResponseError(TerminalError):
    """The job results endpoint answered with a body we cannot interpret."""


class TranscriptFormatError(TerminalError):
    """Raw transcription payload is not valid transcription XML."""


class TranscriptNotFoundError(TerminalError):
    """Raw transcription payload does not exist in storage."""


class TranscriptAccessDeniedError(TerminalError):
    """Storage refused access to the raw transcription payload."""


class InconsistentRecordError(TerminalError):
    """Record state does not allow the job result to be applied."""


class ConfigurationError(SermonAudioError):
    """Missing or invalid connectivity settings."""


class InvariantViolationError(SermonAudioError):
    """A record or translation violates a model invariant."""


class ReconciliationInProgressError(SermonAudioError):
    """Another reconciliation pass holds the guard for this record."""

    def __init__(self, record_id: object) -> None:
        super().__init__(f"Reconciliation already in progress for record {record_id}")
        self.record_id = record_id
