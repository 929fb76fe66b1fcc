from typing import Any


class JobQueueException(Exception):
    """Base exception for the job queue."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(JobQueueException):
    """Raised when a submission or configuration value is invalid."""


class NotFoundError(JobQueueException, KeyError):
    """Raised when a registry lookup finds nothing."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.message


class HandlerNotFoundError(NotFoundError):
    """Raised when no handler is registered for a job type."""

    def __init__(self, job_type: str):
        super().__init__(
            f"No handler registered for job type: {job_type}",
            {"job_type": job_type},
        )
        self.job_type = job_type


def describe_error(exc: BaseException) -> str:
    """Return the message stored on a job for a failed attempt."""
    return str(exc) or exc.__class__.__name__
