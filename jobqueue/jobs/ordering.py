"""
Dispatch ordering for pending jobs.

Jobs are ranked by priority tier (urgent, high, normal, low), then by
creation time, then by submission sequence so that jobs created within the
same clock tick keep their submission order.

There is no aging: under a sustained stream of higher-priority work, low
priority jobs can wait indefinitely. This is an accepted trade-off of the
queue, not a defect.
"""

from collections.abc import Iterable
from datetime import datetime

from jobqueue.jobs.models import Job, JobStatus


def dispatch_key(job: Job) -> tuple[int, datetime, int]:
    """Total order used to dispatch pending jobs."""
    return (job.priority.rank, job.created_at, job.sequence)


def order_pending(jobs: Iterable[Job]) -> list[Job]:
    """Return pending jobs in dispatch order."""
    return sorted(
        (job for job in jobs if job.status == JobStatus.PENDING), key=dispatch_key
    )