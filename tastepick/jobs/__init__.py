"""Jobs module for scheduled tasks and background processing."""

from tastepick.jobs.embedding_worker import WorkerStats, run_embedding_worker
from tastepick.jobs.scheduler import (
    embedding_worker_schedule,
    get_scheduler,
    setup_all_jobs,
    setup_embedding_worker_job,
    shutdown_scheduler,
    start_scheduler,
)

__all__ = [
    "embedding_worker_schedule",
    "get_scheduler",
    "run_embedding_worker",
    "setup_all_jobs",
    "setup_embedding_worker_job",
    "shutdown_scheduler",
    "start_scheduler",
    "WorkerStats",
]
