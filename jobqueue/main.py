from jobqueue.config.logging import setup_logging
from jobqueue.config.settings import Settings, get_settings
from jobqueue.jobs.registry_init import register_job_handlers
from jobqueue.jobs.worker import JobQueue


def create_queue(settings: Settings | None = None, **overrides) -> JobQueue:
    """Create and configure a job queue with the built-in handlers registered."""
    settings = settings or get_settings()

    # Initialize structured logging
    setup_logging(settings)

    queue = JobQueue(settings, **overrides)
    register_job_handlers(queue)
    return queue
