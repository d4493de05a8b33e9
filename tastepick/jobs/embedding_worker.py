"""Embedding worker: drains the embedding job queue with rate limiting."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

from tastepick.config import config
from tastepick.core.contracts import Embedder
from tastepick.core.embeddings import embed_content
from tastepick.logging import get_logger
from tastepick.storage import EmbeddingJobsRepo, get_session_factory

logger = get_logger(__name__)


@dataclass
class WorkerStats:
    """Statistics from a worker run."""

    started_at: datetime
    finished_at: datetime | None = None
    reset_stuck: int = 0
    requeued: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "reset_stuck": self.reset_stuck,
            "requeued": self.requeued,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_seconds": round(self.duration_seconds, 2),
        }


async def run_embedding_worker(
    batch_size: int | None = None,
    embedder: Embedder | None = None,
    delay_seconds: float | None = None,
    session_factory=None,
) -> WorkerStats:
    """Process pending embedding jobs.

    Resets jobs stuck in processing, requeues failed jobs that still have
    attempts left, then embeds up to ``batch_size`` items one at a time.

    Args:
        batch_size: Maximum jobs to process (default EMBEDDING_BATCH_SIZE)
        embedder: Embedder (default: configured LLM adapter)
        delay_seconds: Pause between jobs (default EMBEDDING_RATE_LIMIT_SECONDS)
        session_factory: Session factory (default: application database)

    Returns:
        Run statistics
    """
    batch_size = config.embedding_batch_size if batch_size is None else batch_size
    delay = config.embedding_rate_limit_seconds if delay_seconds is None else delay_seconds
    session_factory = session_factory or get_session_factory()

    stats = WorkerStats(started_at=datetime.now(timezone.utc))

    async with session_factory() as session:
        jobs_repo = EmbeddingJobsRepo(session)
        stats.reset_stuck = await jobs_repo.reset_stuck()
        stats.requeued = await jobs_repo.requeue_failed(config.embedding_max_retries)

        while stats.processed < batch_size:
            if stats.processed > 0 and delay > 0:
                await asyncio.sleep(delay)

            job = await jobs_repo.claim_next_pending()
            if job is None:
                break

            job_id, content_id = job.id, job.content_id
            stats.processed += 1
            try:
                await embed_content(session, content_id, embedder=embedder)
            except Exception as e:
                await session.rollback()
                stats.failed += 1
                logger.warning(f"Embedding job {job_id} failed for content={content_id}: {e}")
                await jobs_repo.mark_failed(job_id, str(e) or type(e).__name__)
                continue

            await jobs_repo.mark_completed(job_id)
            stats.succeeded += 1

    stats.finished_at = datetime.now(timezone.utc)
    if stats.processed or stats.reset_stuck or stats.requeued:
        logger.info(f"Embedding worker finished: {stats.to_dict()}")
    else:
        logger.debug("Embedding worker: queue empty")
    return stats
