"""Tests for queue statistics and cleanup of terminal jobs."""

import pytest

from jobqueue.core.exceptions import ValidationError
from jobqueue.jobs.models import JobStatus
from jobqueue.jobs.schemas import JobView

YEAR_MS = 365 * 24 * 60 * 60 * 1000


async def succeed(job: JobView):
    return "ok"


async def fail(job: JobView):
    raise RuntimeError("nope")


class TestStats:
    """get_stats counts jobs without changing them."""

    @pytest.mark.asyncio
    async def test_stats_count_every_status(self, queue, gate, settle):
        async def blocks(job):
            await gate.wait()

        queue.register_handler("ok", succeed)
        queue.register_handler("bad", fail)
        queue.register_handler("slow", blocks)
        queue.submit("ok")
        queue.submit("bad", max_attempts=1)
        queue.submit("bad")
        queue.submit("slow")
        queue.submit("ok", delay_ms=10_000)
        queue.tick()
        await settle()
        queue.submit("ok")

        stats = queue.get_stats()
        assert stats.total == 6
        assert stats.completed == 1
        assert stats.failed == 1
        assert stats.delayed == 2
        assert stats.processing == 1
        assert stats.pending == 1
        assert stats.queue_depth == 4
        assert stats.by_type == {"ok": 3, "bad": 2, "slow": 1}

        gate.set()

    def test_stats_do_not_mutate_state(self, queue):
        queue.submit("a")
        queue.submit("b", delay_ms=5)

        first = queue.get_stats()
        second = queue.get_stats()

        assert first == second
        assert [j.status for j in queue.get_jobs_by_status("delayed")] == [
            JobStatus.DELAYED
        ]

    def test_empty_queue_stats(self, queue):
        stats = queue.get_stats()
        assert stats.total == 0
        assert stats.by_type == {}


class TestCleanup:
    """cleanup removes old completed and failed jobs only."""

    @pytest.mark.asyncio
    async def test_cleanup_removes_completed_but_not_pending(self, queue, clock, settle):
        queue.register_handler("ok", succeed)
        done = queue.submit("ok")
        queue.tick()
        await settle()
        waiting = queue.submit("unhandled_later")

        assert queue.get_stats().total == 2
        assert queue.cleanup(0) == 1

        assert queue.get_job(done) is None
        assert queue.get_job(waiting).status == JobStatus.PENDING
        assert queue.get_stats().total == 1

    @pytest.mark.asyncio
    async def test_cleanup_never_removes_active_jobs(self, queue, clock, gate, settle):
        async def blocks(job):
            await gate.wait()

        queue.register_handler("slow", blocks)
        queue.register_handler("bad", fail)
        processing = queue.submit("slow")
        delayed = queue.submit("bad")
        queue.tick()
        await settle()
        pending = queue.submit("slow")
        queue.submit("x", delay_ms=1)

        clock.advance(YEAR_MS)
        assert queue.cleanup(0) == 0

        assert queue.get_job(processing).status == JobStatus.PROCESSING
        assert queue.get_job(delayed).status == JobStatus.DELAYED
        assert queue.get_job(pending).status == JobStatus.PENDING
        assert queue.get_stats().total == 4

        gate.set()

    @pytest.mark.asyncio
    async def test_cleanup_removes_failed_jobs(self, queue, clock, settle):
        queue.register_handler("bad", fail)
        failed = queue.submit("bad", max_attempts=1)
        unhandled = queue.submit("nobody_handles_this")
        queue.tick()
        await settle()

        assert queue.get_job(failed).status == JobStatus.FAILED
        assert queue.get_job(unhandled).status == JobStatus.FAILED

        clock.advance(1)
        assert queue.cleanup(1) == 2
        assert queue.get_stats().total == 0

    @pytest.mark.asyncio
    async def test_cleanup_respects_age_threshold(self, queue, clock, settle):
        queue.register_handler("ok", succeed)
        old = queue.submit("ok")
        queue.tick()
        await settle()

        clock.advance(1000)
        recent = queue.submit("ok")
        queue.tick()
        await settle()

        assert queue.cleanup(2000) == 0
        assert queue.cleanup(1000) == 1
        assert queue.get_job(old) is None
        assert queue.get_job(recent) is not None

    @pytest.mark.asyncio
    async def test_cleanup_defaults_to_configured_age(self, queue, clock, settle):
        queue.register_handler("ok", succeed)
        queue.submit("ok")
        queue.tick()
        await settle()

        clock.advance(queue.settings.job_cleanup_after_ms - 1)
        assert queue.cleanup() == 0

        clock.advance(1)
        assert queue.cleanup() == 1

    @pytest.mark.asyncio
    async def test_dry_run_counts_without_removing(self, queue, settle):
        queue.register_handler("ok", succeed)
        job_id = queue.submit("ok")
        queue.tick()
        await settle()

        assert queue.cleanup(0, dry_run=True) == 1
        assert queue.get_job(job_id) is not None

    def test_negative_age_is_rejected(self, queue):
        with pytest.raises(ValidationError):
            queue.cleanup(-1)

    @pytest.mark.asyncio
    async def test_periodic_cleanup_runs_from_tick(
        self, make_queue, fast_settings, clock, settle
    ):
        settings = fast_settings.model_copy(
            update={"job_cleanup_interval_s": 60, "job_cleanup_after_ms": 1000}
        )
        queue = make_queue(settings, clock=clock, tick_interval_ms=60_000)
        queue.register_handler("ok", succeed)
        job_id = queue.submit("ok")
        queue.start()
        await settle()
        assert queue.get_job(job_id).status == JobStatus.COMPLETED

        clock.advance(59_000)
        queue.tick()
        assert queue.get_job(job_id) is not None

        clock.advance(1_000)
        queue.tick()
        assert queue.get_job(job_id) is None
