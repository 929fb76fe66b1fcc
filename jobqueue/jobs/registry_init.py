"""
Registers the built-in job handlers and payload schemas on a queue.
"""

from jobqueue.config.logging import get_logger
from jobqueue.jobs.handlers import MaintenanceCleanupHandler
from jobqueue.jobs.payloads import PAYLOAD_MODELS, JobType
from jobqueue.jobs.worker import JobQueue

logger = get_logger(__name__)


def register_job_handlers(queue: JobQueue) -> None:
    """Register built-in handlers and payload schemas with the queue."""

    logger.info("Registering job handlers")

    for job_type, model in PAYLOAD_MODELS.items():
        queue.register_payload_model(job_type.value, model)

    # Maintenance job handlers
    queue.register_handler(
        JobType.MAINTENANCE_CLEANUP.value, MaintenanceCleanupHandler(queue)
    )

    logger.info("Job handlers registered", registered_handlers=queue.registered_types())
