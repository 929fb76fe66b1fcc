"""
Pydantic schemas for job submission, inspection and statistics.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from jobqueue.jobs.models import JobPriority, JobStatus


class JobCreate(BaseModel):
    """Schema for a job submission."""

    type: str = Field(..., min_length=1, description="Job type identifier")
    payload: Any = Field(default=None, description="Opaque handler data")
    priority: JobPriority = Field(
        default=JobPriority.NORMAL, description="Dispatch tier"
    )
    delay_ms: float = Field(
        default=0, ge=0, description="Milliseconds before the job becomes eligible"
    )
    max_attempts: int | None = Field(
        default=None, ge=1, description="Attempt ceiling, queue default if omitted"
    )
    dedupe_key: str | None = Field(default=None, description="Deduplication key")


class JobView(BaseModel):
    """Read-only snapshot of a job handed to handlers and observers."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    type: str
    payload: Any = None
    priority: JobPriority
    status: JobStatus
    attempts: int
    max_attempts: int
    created_at: datetime
    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None
    result: Any = None
    dedupe_key: str | None = None


class JobStatsResponse(BaseModel):
    """Schema for job statistics."""

    total: int = 0
    pending: int = 0
    processing: int = 0
    delayed: int = 0
    completed: int = 0
    failed: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)

    @property
    def queue_depth(self) -> int:
        """Jobs not yet in a terminal state."""
        return self.pending + self.processing + self.delayed
