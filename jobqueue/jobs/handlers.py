"""
Built-in job handlers.

Integrations (mail, SMS, reporting) register their own handlers on the
queue; the only handler shipped here maintains the queue itself.
"""

from typing import TYPE_CHECKING, Any

from jobqueue.config.logging import get_logger
from jobqueue.jobs.payloads import MaintenanceCleanupData
from jobqueue.jobs.schemas import JobView

if TYPE_CHECKING:
    from jobqueue.jobs.worker import JobQueue

logger = get_logger(__name__)


class MaintenanceCleanupHandler:
    """
    Job handler that evicts old completed and failed jobs from its queue.

    Payload expected:
    {
        "older_than_ms": 86400000,  # optional, defaults to the queue setting
        "dry_run": false  # optional
    }
    """

    def __init__(self, queue: "JobQueue"):
        self.queue = queue

    async def handle(self, job: JobView) -> dict[str, Any]:
        params = job.payload
        if not isinstance(params, MaintenanceCleanupData):
            params = MaintenanceCleanupData.model_validate(params or {})

        logger.info(
            "Starting maintenance cleanup",
            older_than_ms=params.older_than_ms,
            dry_run=params.dry_run,
        )

        count = self.queue.cleanup(params.older_than_ms, dry_run=params.dry_run)

        logger.info(
            "Maintenance cleanup completed", count=count, dry_run=params.dry_run
        )

        if params.dry_run:
            return {"status": "dry_run", "would_remove": count}
        return {"status": "completed", "removed": count}
