"""
In-process priority job queue with bounded concurrency and linear retry backoff.
"""

import asyncio
import inspect
import itertools
import threading
import uuid
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pydantic
from pydantic import BaseModel

from jobqueue.config.logging import bind_job_context, get_logger
from jobqueue.config.settings import Settings, get_settings
from jobqueue.core.exceptions import ValidationError, describe_error
from jobqueue.core.registries import Handler, JobRegistry, PayloadModelRegistry
from jobqueue.jobs.events import EventEmitter, JobEvent
from jobqueue.jobs.models import Job, JobPriority, JobStatus
from jobqueue.jobs.ordering import order_pending
from jobqueue.jobs.retry import RetryPolicy
from jobqueue.jobs.schemas import JobCreate, JobStatsResponse, JobView

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class JobQueue:
    """
    Priority-ordered background job scheduler.

    Features:
    - urgent/high/normal/low tiers, FIFO within a tier
    - delayed jobs promoted to pending on each tick
    - at most ``concurrency`` jobs processing, each as its own asyncio task
    - linear retry backoff (``retry_delay_ms * attempts``) up to ``max_attempts``
    - lifecycle events, status counts and cleanup of old terminal jobs

    Jobs live in memory only. A handler that never returns keeps its
    concurrency slot; there is no timeout or cancellation of running jobs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        concurrency: int | None = None,
        retry_delay_ms: int | None = None,
        max_attempts: int | None = None,
        tick_interval_ms: int | None = None,
        registry: JobRegistry | None = None,
        payload_models: PayloadModelRegistry | None = None,
        events: EventEmitter | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings or get_settings()
        self.concurrency = _positive(
            "concurrency", concurrency, self.settings.job_concurrency
        )
        self.max_attempts = _positive(
            "max_attempts", max_attempts, self.settings.job_max_attempts
        )
        self.tick_interval_ms = _positive(
            "tick_interval_ms", tick_interval_ms, self.settings.job_tick_interval_ms
        )
        retry_delay_ms = (
            self.settings.job_retry_delay_ms if retry_delay_ms is None else retry_delay_ms
        )
        if retry_delay_ms < 0:
            raise ValidationError(
                "retry_delay_ms must be >= 0", {"retry_delay_ms": retry_delay_ms}
            )
        self.retry_policy = RetryPolicy(retry_delay_ms)

        self.registry = registry or JobRegistry()
        self.payload_models = payload_models or PayloadModelRegistry()
        self.events = events or EventEmitter()
        self._clock = clock or utcnow

        self._jobs: dict[str, Job] = {}
        self._processing: set[str] = set()
        self._tasks: dict[str, asyncio.Task] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()

        self._running = False
        self._tick_task: asyncio.Task | None = None
        self._last_cleanup_at: datetime | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def retry_delay_ms(self) -> int:
        return self.retry_policy.retry_delay_ms

    # Registration

    def register_handler(
        self,
        job_type: str,
        handler: Handler,
        payload_model: type[BaseModel] | None = None,
    ) -> None:
        """Register the handler for a job type, replacing any previous one."""
        self.registry.register(job_type, handler)
        if payload_model is not None:
            self.register_payload_model(job_type, payload_model)
        logger.info("Job handler registered", job_type=job_type)

    def register_payload_model(
        self, job_type: str, payload_model: type[BaseModel]
    ) -> None:
        """Validate payloads submitted for ``job_type`` against a pydantic model."""
        self.payload_models.register(job_type, payload_model)

    def registered_types(self) -> list[str]:
        return self.registry.list()

    # Submission

    def submit(
        self,
        job_type: str,
        payload: Any = None,
        *,
        priority: JobPriority | str = JobPriority.NORMAL,
        delay_ms: float = 0,
        max_attempts: int | None = None,
        dedupe_key: str | None = None,
    ) -> str:
        """
        Add a job to the queue and return its ID.

        Invalid arguments raise ValidationError and nothing is enqueued.
        With ``dedupe_key`` set, an existing job carrying the same key that
        has not failed is returned instead of creating a new one.

        Safe to call from threads other than the one running the queue.
        """
        try:
            request = JobCreate(
                type=job_type,
                payload=payload,
                priority=priority,
                delay_ms=delay_ms,
                max_attempts=max_attempts,
                dedupe_key=dedupe_key,
            )
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid job submission", {"errors": e.errors(include_url=False)}
            ) from e

        payload = self._validate_payload(request.type, request.payload)

        with self._lock:
            if request.dedupe_key:
                existing = self._find_by_dedupe_key(request.dedupe_key)
                if existing is not None:
                    logger.info(
                        "Job deduplicated",
                        job_id=existing.id,
                        dedupe_key=request.dedupe_key,
                        job_type=request.type,
                    )
                    return existing.id

            now = self._clock()
            delayed = request.delay_ms > 0
            job = Job(
                id=str(uuid.uuid4()),
                type=request.type,
                payload=payload,
                priority=request.priority,
                max_attempts=request.max_attempts or self.max_attempts,
                created_at=now,
                scheduled_at=now + timedelta(milliseconds=request.delay_ms),
                status=JobStatus.DELAYED if delayed else JobStatus.PENDING,
                sequence=next(self._sequence),
                dedupe_key=request.dedupe_key,
            )
            self._jobs[job.id] = job
            view = self._view(job)

        logger.info(
            "Job enqueued",
            job_id=job.id,
            job_type=job.type,
            priority=job.priority.value,
            status=job.status.value,
            delay_ms=request.delay_ms,
        )
        self.events.emit(JobEvent.JOB_ADDED, view)

        if self.settings.job_autostart and not self._running and _loop_running():
            self.start()

        return job.id

    def _validate_payload(self, job_type: str, payload: Any) -> Any:
        model = self.payload_models.find(job_type)
        if model is None or isinstance(payload, model):
            return payload
        try:
            return model.model_validate(payload if payload is not None else {})
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid payload for job type: {job_type}",
                {"job_type": job_type, "errors": e.errors(include_url=False)},
            ) from e

    def _find_by_dedupe_key(self, dedupe_key: str) -> Job | None:
        for job in self._jobs.values():
            if job.dedupe_key == dedupe_key and job.status != JobStatus.FAILED:
                return job
        return None

    # Lifecycle

    def start(self) -> None:
        """Start the tick loop. Does nothing if it is already running."""
        if self._running:
            return

        loop = asyncio.get_running_loop()
        self._running = True
        self._last_cleanup_at = self._clock()
        self.events.bind_loop(loop)
        self._tick_task = loop.create_task(self._tick_loop(), name="jobqueue-tick")

        logger.info(
            "Job queue started",
            concurrency=self.concurrency,
            tick_interval_ms=self.tick_interval_ms,
            retry_delay_ms=self.retry_delay_ms,
        )
        self.events.emit(JobEvent.QUEUE_STARTED)

    def stop(self) -> None:
        """Stop future ticks. Jobs already processing run to completion."""
        if not self._running:
            return

        self._running = False
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

        logger.info("Job queue stopped", in_flight=len(self._processing))
        self.events.emit(JobEvent.QUEUE_STOPPED)

    async def drain(self, timeout_s: float | None = None) -> bool:
        """Wait for in-flight jobs to finish. Returns False if some are still running."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks, timeout=timeout_s)

        if self._processing:
            logger.warning(
                "Queue drained with active jobs", active_jobs=len(self._processing)
            )
            return False
        return True

    async def close(self, timeout_s: float | None = None) -> bool:
        """Stop the queue and wait for in-flight jobs."""
        self.stop()
        if timeout_s is None:
            timeout_s = self.settings.job_drain_timeout_s
        return await self.drain(timeout_s)

    async def wait_until_idle(
        self, timeout_s: float | None = None, poll_interval_s: float | None = None
    ) -> None:
        """Wait until no job is pending, delayed or processing."""
        interval = poll_interval_s or self.tick_interval_ms / 1000

        async def _idle() -> None:
            while self._has_active_jobs():
                await asyncio.sleep(interval)

        await asyncio.wait_for(_idle(), timeout=timeout_s)

    def _has_active_jobs(self) -> bool:
        with self._lock:
            return any(job.is_active() for job in self._jobs.values())

    async def _tick_loop(self) -> None:
        while self._running:
            try:
                self.tick()
            except Exception:
                logger.exception("Error in job queue tick")
            await asyncio.sleep(self.tick_interval_ms / 1000)

    # Dispatch

    def tick(self) -> int:
        """
        Run one scheduling pass and return the number of jobs dispatched.

        Promotes due delayed jobs, hands the highest-priority pending jobs to
        their handlers while concurrency slots are free, and runs periodic
        cleanup. Never waits on a handler.
        """
        now = self._clock()
        dispatched = 0

        with self._lock:
            self._promote_due(now)

            available_slots = self.concurrency - len(self._processing)
            if available_slots > 0:
                for job in order_pending(self._jobs.values()):
                    if dispatched >= available_slots:
                        break
                    handler = self.registry.find(job.type)
                    if handler is None:
                        self._fail_unhandled(job, now)
                        continue
                    self._dispatch(job, handler, now)
                    dispatched += 1

        self._maybe_cleanup(now)
        return dispatched

    def _promote_due(self, now: datetime) -> None:
        promoted = []
        for job in list(self._jobs.values()):
            if job.is_due(now):
                job.status = JobStatus.PENDING
                promoted.append(self._view(job))

        # Listeners may submit or clean up, so notify once promotion is done
        for view in promoted:
            self.events.emit(JobEvent.JOB_READY, view)

    def _fail_unhandled(self, job: Job, now: datetime) -> None:
        job.status = JobStatus.FAILED
        job.failed_at = now
        job.error = f"No handler registered for job type: {job.type}"

        logger.error("Job failed", job_id=job.id, job_type=job.type, error=job.error)
        self.events.emit(JobEvent.JOB_FAILED, self._view(job))

    def _dispatch(self, job: Job, handler: Handler, now: datetime) -> None:
        loop = asyncio.get_running_loop()
        job.status = JobStatus.PROCESSING
        job.attempts += 1
        if job.started_at is None:
            job.started_at = now
        self._processing.add(job.id)

        view = self._view(job)
        task = loop.create_task(self._run_job(job, handler, view), name=f"job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t, job=job: self._on_task_done(job, t))

        logger.info(
            "Processing job started",
            job_id=job.id,
            job_type=job.type,
            attempt=job.attempts,
            max_attempts=job.max_attempts,
        )
        self.events.emit(JobEvent.JOB_STARTED, view)

    async def _run_job(self, job: Job, handler: Handler, view: JobView) -> None:
        bind_job_context(job.id, job_type=job.type)
        try:
            result = await _invoke(handler, view)
        except Exception as e:
            logger.warning("Job processing failed", error=describe_error(e))
            self._record_failure(job, describe_error(e))
        else:
            self._record_success(job, result)

    def _on_task_done(self, job: Job, task: asyncio.Task) -> None:
        self._tasks.pop(job.id, None)
        # A cancelled task (event loop teardown) still counts as a failed attempt
        if task.cancelled() and job.status == JobStatus.PROCESSING:
            self._record_failure(job, "Job processing cancelled")

    def _record_success(self, job: Job, result: Any) -> None:
        with self._lock:
            self._processing.discard(job.id)
            job.status = JobStatus.COMPLETED
            job.completed_at = self._clock()
            job.result = result
            view = self._view(job)

        logger.info("Processing job completed successfully", job_id=job.id)
        self.events.emit(JobEvent.JOB_COMPLETED, view)

    def _record_failure(self, job: Job, error: str) -> None:
        with self._lock:
            self._processing.discard(job.id)
            now = self._clock()
            job.error = error
            decision = self.retry_policy.decide(job.attempts, job.max_attempts, now)
            if decision.retry:
                job.status = JobStatus.DELAYED
                job.scheduled_at = decision.run_at
            else:
                job.status = JobStatus.FAILED
                job.failed_at = now
            view = self._view(job)

        if decision.retry:
            logger.info(
                "Job scheduled for retry",
                job_id=job.id,
                attempt=job.attempts,
                next_run_at=decision.run_at.isoformat(),
            )
            self.events.emit(JobEvent.JOB_RETRY, view, delay_ms=decision.delay_ms)
        else:
            logger.error(
                "Job failed after exhausting attempts",
                job_id=job.id,
                attempts=job.attempts,
                error=error,
            )
            self.events.emit(JobEvent.JOB_FAILED, view)

    # Introspection

    def get_job(self, job_id: str) -> JobView | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return self._view(job) if job is not None else None

    def get_jobs_by_status(self, status: JobStatus | str) -> list[JobView]:
        """Jobs currently in ``status``, oldest first."""
        try:
            status = JobStatus(status)
        except ValueError:
            raise ValidationError(
                f"Invalid status: {status}",
                {"valid_statuses": [s.value for s in JobStatus]},
            ) from None

        with self._lock:
            return [
                self._view(job)
                for job in sorted(self._jobs.values(), key=lambda j: j.sequence)
                if job.status == status
            ]

    def get_stats(self) -> JobStatsResponse:
        """Count jobs per status and per type. Read-only."""
        with self._lock:
            jobs = list(self._jobs.values())

        by_status = Counter(job.status for job in jobs)
        return JobStatsResponse(
            total=len(jobs),
            pending=by_status[JobStatus.PENDING],
            processing=by_status[JobStatus.PROCESSING],
            delayed=by_status[JobStatus.DELAYED],
            completed=by_status[JobStatus.COMPLETED],
            failed=by_status[JobStatus.FAILED],
            by_type=dict(Counter(job.type for job in jobs)),
        )

    # Cleanup

    def cleanup(self, older_than_ms: int | None = None, *, dry_run: bool = False) -> int:
        """
        Remove completed and failed jobs that finished at least
        ``older_than_ms`` ago. Returns the number of jobs removed (or, with
        ``dry_run``, the number that would be).
        """
        if older_than_ms is None:
            older_than_ms = self.settings.job_cleanup_after_ms
        if older_than_ms < 0:
            raise ValidationError(
                "older_than_ms must be >= 0", {"older_than_ms": older_than_ms}
            )

        cutoff = self._clock() - timedelta(milliseconds=older_than_ms)
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal() and job.finished_at <= cutoff
            ]
            if not dry_run:
                for job_id in expired:
                    del self._jobs[job_id]

        if dry_run:
            return len(expired)

        if expired:
            logger.info(
                "Cleaned up old jobs",
                deleted_count=len(expired),
                older_than_ms=older_than_ms,
            )
        self.events.emit(JobEvent.QUEUE_CLEANED, count=len(expired))
        return len(expired)

    def _maybe_cleanup(self, now: datetime) -> None:
        interval_s = self.settings.job_cleanup_interval_s
        if not interval_s or self._last_cleanup_at is None:
            return
        if now - self._last_cleanup_at >= timedelta(seconds=interval_s):
            self._last_cleanup_at = now
            self.cleanup()

    @staticmethod
    def _view(job: Job) -> JobView:
        return JobView.model_validate(job, from_attributes=True)


async def _invoke(handler: Handler, view: JobView) -> Any:
    call = getattr(handler, "handle", handler)
    outcome = call(view)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


def _positive(name: str, value: int | None, default: int) -> int:
    value = default if value is None else value
    if value < 1:
        raise ValidationError(f"{name} must be >= 1", {name: value})
    return value


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
