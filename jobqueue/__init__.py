"""Priority background job queue for the operations backend."""

from jobqueue.core.exceptions import (
    HandlerNotFoundError,
    JobQueueException,
    NotFoundError,
    ValidationError,
)
from jobqueue.jobs.events import JobEvent, LifecycleEvent
from jobqueue.jobs.models import JobPriority, JobStatus
from jobqueue.jobs.payloads import JobType
from jobqueue.jobs.schemas import JobStatsResponse, JobView
from jobqueue.jobs.worker import JobQueue
from jobqueue.main import create_queue

__version__ = "1.0.0"

__all__ = [
    "HandlerNotFoundError",
    "JobEvent",
    "JobPriority",
    "JobQueue",
    "JobQueueException",
    "JobStatsResponse",
    "JobStatus",
    "JobType",
    "JobView",
    "LifecycleEvent",
    "NotFoundError",
    "ValidationError",
    "create_queue",
]
