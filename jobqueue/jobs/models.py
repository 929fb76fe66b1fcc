"""
Job record and lifecycle enumerations for the in-memory queue.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    DELAYED = "delayed"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class JobPriority(str, Enum):
    """Job priority tiers, dispatched urgent first."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    JobPriority.URGENT: 0,
    JobPriority.HIGH: 1,
    JobPriority.NORMAL: 2,
    JobPriority.LOW: 3,
}


@dataclass
class Job:
    """
    A unit of background work and its lifecycle state.

    Only the owning JobQueue mutates these fields; handlers and event
    listeners receive a JobView snapshot instead.
    """

    id: str
    type: str
    payload: Any
    priority: JobPriority
    max_attempts: int
    created_at: datetime
    scheduled_at: datetime
    status: JobStatus
    sequence: int
    attempts: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None
    result: Any = None
    dedupe_key: str | None = field(default=None, repr=False)

    def is_terminal(self) -> bool:
        """Check if job is completed or failed."""
        return self.status in TERMINAL_STATUSES

    def is_active(self) -> bool:
        """Check if job is still waiting or running."""
        return not self.is_terminal()

    def is_due(self, now: datetime) -> bool:
        """Check if a delayed job has reached its eligibility time."""
        return self.status == JobStatus.DELAYED and self.scheduled_at <= now

    @property
    def finished_at(self) -> datetime | None:
        """Terminal timestamp, if the job has reached a terminal state."""
        if self.status == JobStatus.COMPLETED:
            return self.completed_at
        if self.status == JobStatus.FAILED:
            return self.failed_at
        return None
