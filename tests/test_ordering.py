from datetime import UTC, datetime, timedelta

from jobqueue.jobs.models import Job, JobPriority, JobStatus
from jobqueue.jobs.ordering import dispatch_key, order_pending

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def make_job(
    job_id: str,
    priority: JobPriority = JobPriority.NORMAL,
    offset_ms: int = 0,
    sequence: int = 0,
    status: JobStatus = JobStatus.PENDING,
) -> Job:
    created = T0 + timedelta(milliseconds=offset_ms)
    return Job(
        id=job_id,
        type="task",
        payload={},
        priority=priority,
        max_attempts=3,
        created_at=created,
        scheduled_at=created,
        status=status,
        sequence=sequence,
    )


def test_priority_tier_beats_creation_time():
    older_low = make_job("low", JobPriority.LOW, offset_ms=0, sequence=0)
    newer_urgent = make_job("urgent", JobPriority.URGENT, offset_ms=500, sequence=1)

    assert [j.id for j in order_pending([older_low, newer_urgent])] == [
        "urgent",
        "low",
    ]


def test_fifo_within_a_tier():
    jobs = [
        make_job("second", JobPriority.HIGH, offset_ms=10, sequence=1),
        make_job("first", JobPriority.HIGH, offset_ms=0, sequence=0),
        make_job("third", JobPriority.HIGH, offset_ms=20, sequence=2),
    ]

    assert [j.id for j in order_pending(jobs)] == ["first", "second", "third"]


def test_sequence_breaks_creation_time_ties():
    jobs = [
        make_job("b", sequence=7),
        make_job("a", sequence=3),
    ]

    assert [j.id for j in order_pending(jobs)] == ["a", "b"]


def test_only_pending_jobs_are_ordered():
    jobs = [
        make_job("delayed", JobPriority.URGENT, status=JobStatus.DELAYED),
        make_job("running", JobPriority.URGENT, status=JobStatus.PROCESSING),
        make_job("done", JobPriority.URGENT, status=JobStatus.COMPLETED),
        make_job("waiting", JobPriority.LOW),
    ]

    assert [j.id for j in order_pending(jobs)] == ["waiting"]


def test_dispatch_key_ranks_all_tiers():
    ranks = [
        dispatch_key(make_job(p.value, p))[0]
        for p in (JobPriority.URGENT, JobPriority.HIGH, JobPriority.NORMAL, JobPriority.LOW)
    ]

    assert ranks == sorted(ranks)
    assert len(set(ranks)) == 4
