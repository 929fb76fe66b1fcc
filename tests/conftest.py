import asyncio
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from jobqueue.config.settings import Settings
from jobqueue.jobs.worker import JobQueue


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo global structlog configuration made by a test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    # Module-level loggers cache their assembled logger (and its output
    # stream) on first use; drop those caches so they pick up the reset.
    for name, module in list(sys.modules.items()):
        if name.split(".")[0] not in ("jobqueue", "cli"):
            continue
        proxy = getattr(module, "logger", None)
        if isinstance(proxy, structlog._config.BoundLoggerLazyProxy):
            proxy.__dict__.pop("bind", None)


class FakeClock:
    """Manually advanced clock for deterministic scheduling tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short intervals and no autostart or periodic cleanup."""
    return Settings(
        debug=False,
        job_concurrency=5,
        job_retry_delay_ms=20,
        job_max_attempts=3,
        job_tick_interval_ms=10,
        job_cleanup_interval_s=0,
        job_autostart=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def make_queue(
    fast_settings: Settings,
) -> AsyncGenerator[Callable[..., JobQueue], None]:
    """Factory for queues that are closed after the test."""
    queues: list[JobQueue] = []

    def _make(settings: Settings | None = None, **overrides) -> JobQueue:
        queue = JobQueue(settings or fast_settings, **overrides)
        queues.append(queue)
        return queue

    yield _make

    for queue in queues:
        queue.stop()
        for task in list(queue._tasks.values()):
            task.cancel()
        await queue.drain(timeout_s=1)


@pytest.fixture
async def queue(make_queue, clock) -> JobQueue:
    """Queue driven by a fake clock; tests call tick() themselves."""
    return make_queue(clock=clock)


@pytest.fixture
def settle() -> Callable:
    """Let dispatched handler tasks run until they block or finish."""

    async def _settle(rounds: int = 5) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def gate() -> asyncio.Event:
    """Event that blocking handlers wait on."""
    return asyncio.Event()
