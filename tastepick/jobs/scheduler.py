"""Scheduler for the embedding worker."""

from datetime import datetime, timezone
from typing import Any

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from tastepick.config import config
from tastepick.logging import get_logger

logger = get_logger(__name__)

EMBEDDING_WORKER_JOB_ID = "embedding_worker"

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get the process-wide scheduler, creating it stopped on first use.

    A run that overlaps the previous one is skipped; missed runs collapse
    into one.
    """
    global _scheduler

    if _scheduler is None:
        _scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
        )

    return _scheduler


def start_scheduler() -> None:
    scheduler = get_scheduler()
    if not scheduler.running:
        logger.info("Starting scheduler")
        scheduler.start()


def shutdown_scheduler() -> None:
    """Stop the scheduler (waiting for a running job) and drop it."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.info("Shutting down scheduler")
        _scheduler.shutdown(wait=True)
    _scheduler = None


async def _run_scheduled_worker() -> None:
    from tastepick.jobs.embedding_worker import run_embedding_worker

    try:
        await run_embedding_worker()
    except Exception as e:
        logger.exception(f"Scheduled embedding run failed: {e}")


def setup_embedding_worker_job() -> str | None:
    """Schedule the embedding worker every EMBEDDING_WORKER_INTERVAL_SECONDS.

    The first run starts immediately.

    Returns:
        The job ID, or None when the worker is disabled or cannot embed
    """
    if not config.embedding_worker_enabled:
        logger.info("Embedding worker not scheduled: EMBEDDING_WORKER_ENABLED=false")
        return None

    if not config.openai_api_key:
        logger.warning("Embedding worker not scheduled: OPENAI_API_KEY not set")
        return None

    job = get_scheduler().add_job(
        _run_scheduled_worker,
        "interval",
        seconds=config.embedding_worker_interval_seconds,
        id=EMBEDDING_WORKER_JOB_ID,
        name="Embedding Worker",
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),
    )
    logger.info(f"Scheduled embedding worker every {config.embedding_worker_interval_seconds}s")
    return job.id


def embedding_worker_schedule() -> dict[str, Any]:
    """Whether the worker is scheduled and when it runs next."""
    job = _scheduler.get_job(EMBEDDING_WORKER_JOB_ID) if _scheduler is not None else None
    next_run = getattr(job, "next_run_time", None)
    return {
        "scheduled": job is not None,
        "next_run_at": next_run.isoformat() if next_run else None,
    }


def setup_all_jobs() -> None:
    setup_embedding_worker_job()
