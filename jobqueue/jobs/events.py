"""
Lifecycle notifications for the job queue.

Listeners are fire-and-forget observers: a failing listener is logged and
never affects job state or the scheduler loop.
"""

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from jobqueue.config.logging import get_logger
from jobqueue.core.exceptions import ValidationError
from jobqueue.jobs.schemas import JobView

logger = get_logger(__name__)

ALL_EVENTS = "*"


class JobEvent(str, Enum):
    """Events emitted by the queue."""

    JOB_ADDED = "job:added"
    JOB_READY = "job:ready"
    JOB_STARTED = "job:started"
    JOB_COMPLETED = "job:completed"
    JOB_FAILED = "job:failed"
    JOB_RETRY = "job:retry"
    QUEUE_STARTED = "queue:started"
    QUEUE_STOPPED = "queue:stopped"
    QUEUE_CLEANED = "queue:cleaned"


class LifecycleEvent(BaseModel):
    """Notification delivered to listeners."""

    type: JobEvent
    job: JobView | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


Listener = Callable[[LifecycleEvent], Awaitable[None] | None]


class EventEmitter:
    """In-process publish/subscribe for lifecycle events."""

    def __init__(self):
        self._subscribers: dict[str, list[tuple[str, Listener]]] = defaultdict(list)
        self._subscription_counter = 0
        self._pending: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Deliver async listeners on ``loop`` when emitting from other threads."""
        self._loop = loop

    def subscribe(self, event: JobEvent | str, listener: Listener) -> str:
        """Subscribe to one event type (or ``"*"`` for all). Returns a subscription ID."""
        topic = _topic(event)
        self._subscription_counter += 1
        sub_id = f"sub-{self._subscription_counter}"
        self._subscribers[topic].append((sub_id, listener))
        logger.debug("subscription_created", subscription_id=sub_id, topic=topic)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        removed = False
        for topic, subs in self._subscribers.items():
            kept = [(sid, fn) for sid, fn in subs if sid != subscription_id]
            removed = removed or len(kept) != len(subs)
            self._subscribers[topic] = kept
        if removed:
            logger.debug("subscription_removed", subscription_id=subscription_id)
        return removed

    def listener_count(self, event: JobEvent | str | None = None) -> int:
        if event is None:
            return sum(len(subs) for subs in self._subscribers.values())
        return len(self._subscribers.get(_topic(event), []))

    def emit(
        self, event: JobEvent, job: JobView | None = None, **data: Any
    ) -> LifecycleEvent:
        """Deliver an event to its listeners without waiting on async ones."""
        notification = LifecycleEvent(type=event, job=job, data=data)
        listeners = self._subscribers.get(event.value, []) + self._subscribers.get(
            ALL_EVENTS, []
        )

        for sub_id, listener in listeners:
            try:
                outcome = listener(notification)
            except Exception:
                logger.exception(
                    "Event listener failed", event=event.value, subscription_id=sub_id
                )
                continue

            if inspect.isawaitable(outcome):
                self._schedule(outcome, event, sub_id)

        return notification

    def _schedule(self, outcome: Awaitable[None], event: JobEvent, sub_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._spawn(loop, outcome, event, sub_id)
            return

        bound = self._loop
        if bound is not None and bound.is_running():
            # Emitted from another thread: hand the listener to the queue's loop
            bound.call_soon_threadsafe(self._spawn, bound, outcome, event, sub_id)
            return

        if inspect.iscoroutine(outcome):
            outcome.close()
        logger.warning(
            "Dropped async event listener outside event loop",
            event=event.value,
            subscription_id=sub_id,
        )

    def _spawn(
        self,
        loop: asyncio.AbstractEventLoop,
        outcome: Awaitable[None],
        event: JobEvent,
        sub_id: str,
    ) -> None:
        task = asyncio.ensure_future(outcome, loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(
            lambda t: _log_listener_failure(t, event.value, sub_id)
        )


def _topic(event: JobEvent | str) -> str:
    if isinstance(event, JobEvent):
        return event.value
    if event == ALL_EVENTS:
        return ALL_EVENTS
    try:
        return JobEvent(event).value
    except ValueError:
        raise ValidationError(
            f"Unknown lifecycle event: {event}", {"event": event}
        ) from None


def _log_listener_failure(task: asyncio.Task, event: str, sub_id: str) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Event listener failed",
            event=event,
            subscription_id=sub_id,
            error=str(exc),
        )
