"""Repository for the embedding job queue."""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.logging import get_logger
from tastepick.storage.models import EmbeddingJob

logger = get_logger(__name__)

ACTIVE_STATUSES = ("pending", "processing")
STUCK_AFTER = timedelta(minutes=5)


class EmbeddingJobsRepo:
    """Queue of content items waiting for an embedding.

    At most one pending or processing job exists per content item. Bulk
    updates skip identity-map synchronisation; callers refresh the jobs
    they hold.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def enqueue(self, content_id: str) -> str | None:
        """Enqueue an embedding job for content.

        Args:
            content_id: Content ID

        Returns:
            New job ID, or None if an active job already exists
        """
        stmt = select(EmbeddingJob.id).where(
            EmbeddingJob.content_id == content_id,
            EmbeddingJob.status.in_(ACTIVE_STATUSES),
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is not None:
            return None

        now = datetime.now(timezone.utc)
        job = EmbeddingJob(
            id=uuid.uuid4().hex,
            content_id=content_id,
            status="pending",
            retry_count=0,
            created_at=now,
            updated_at=now,
        )
        self.session.add(job)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(f"Embedding job already active for content={content_id}")
            return None

        return job.id

    async def claim_next_pending(self) -> EmbeddingJob | None:
        """Take the oldest pending job and mark it processing.

        The status flip is conditional on the job still being pending, so
        two workers never both claim the same job.
        """
        while True:
            stmt = (
                select(EmbeddingJob)
                .where(EmbeddingJob.status == "pending")
                .order_by(EmbeddingJob.created_at.asc(), EmbeddingJob.id.asc())
                .limit(1)
            )
            result = await self.session.execute(stmt)
            job = result.scalar_one_or_none()
            if job is None:
                return None

            now = datetime.now(timezone.utc)
            claim = (
                update(EmbeddingJob)
                .where(EmbeddingJob.id == job.id, EmbeddingJob.status == "pending")
                .values(status="processing", updated_at=now)
                .execution_options(synchronize_session=False)
            )
            claimed = await self.session.execute(claim)
            await self.session.commit()

            if claimed.rowcount > 0:
                await self.session.refresh(job)
                return job

    async def mark_completed(self, job_id: str) -> None:
        now = datetime.now(timezone.utc)
        stmt = (
            update(EmbeddingJob)
            .where(EmbeddingJob.id == job_id)
            .values(status="completed", processed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def mark_failed(self, job_id: str, error_message: str) -> None:
        """Mark a job failed and count the attempt."""
        now = datetime.now(timezone.utc)
        stmt = (
            update(EmbeddingJob)
            .where(EmbeddingJob.id == job_id)
            .values(
                status="failed",
                error_message=error_message[:1000],
                retry_count=EmbeddingJob.retry_count + 1,
                processed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def requeue_failed(self, max_retries: int) -> int:
        """Move failed jobs with attempts left back to pending.

        Args:
            max_retries: Jobs that failed this many times stay failed

        Returns:
            Number of jobs requeued
        """
        active = (
            select(EmbeddingJob.content_id)
            .where(EmbeddingJob.status.in_(ACTIVE_STATUSES))
            .scalar_subquery()
        )
        stmt = (
            update(EmbeddingJob)
            .where(
                EmbeddingJob.status == "failed",
                EmbeddingJob.retry_count < max_retries,
                EmbeddingJob.content_id.not_in(active),
            )
            .values(status="pending", updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    async def reset_stuck(self, older_than: timedelta = STUCK_AFTER) -> int:
        """Return jobs stuck in processing (crashed worker) to pending.

        Returns:
            Number of jobs reset
        """
        now = datetime.now(timezone.utc)
        stmt = (
            update(EmbeddingJob)
            .where(
                EmbeddingJob.status == "processing",
                EmbeddingJob.updated_at < now - older_than,
            )
            .values(status="pending", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    async def get_job(self, job_id: str) -> EmbeddingJob | None:
        stmt = select(EmbeddingJob).where(EmbeddingJob.id == job_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_status(self) -> dict[str, int]:
        """Count jobs grouped by status."""
        stmt = select(EmbeddingJob.status, func.count()).group_by(EmbeddingJob.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}
