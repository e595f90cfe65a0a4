"""
Domain-specific exception hierarchy for the analysis pipeline.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (job ID, phase, etc.) for logging/debugging.

    ValidationError          → 400, no job created
    NotFoundError            → 404
    NotReadyError            → 400, carries the current status
    TransientActivityError   → retried inside the Activity Gateway
    PermanentActivityError   → fallback Result, job ends Failed
    ConflictError            → checkpoint content or ordering mismatch
    StorageError             → fatal to the current resume attempt
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        phase: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message
        self.job_id = job_id
        self.phase = phase
        self.details = details or {}
        super().__init__(message)


class ValidationError(PipelineError):
    """The analysis request is malformed or unsupported."""
    pass


class NotFoundError(PipelineError):
    """Unknown job, checkpoint or file id."""
    pass


class NotReadyError(PipelineError):
    """The job has not reached a terminal state yet."""

    def __init__(self, message: str, *, status: str, **kwargs) -> None:
        self.status = status
        super().__init__(message, **kwargs)


class ActivityError(PipelineError):
    """Base class for errors raised by collaborators behind the gateway."""
    pass


class TransientActivityError(ActivityError):
    """Rate limit, timeout or other error worth retrying."""
    pass


class PermanentActivityError(ActivityError):
    """Collaborator rejected the input, or retries were exhausted."""

    def __init__(self, message: str, *, attempts: int = 1, **kwargs) -> None:
        self.attempts = attempts
        super().__init__(message, **kwargs)


class UnknownActivityError(PermanentActivityError):
    """No activity is registered under the requested name."""
    pass


class ConflictError(PipelineError):
    """A checkpoint already exists with different content, or is out of order."""
    pass


class StorageError(PipelineError):
    """Checkpoint or job state persistence failed."""
    pass
