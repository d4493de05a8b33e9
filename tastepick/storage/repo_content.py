"""Repository for catalogue content operations."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.logging import get_logger
from tastepick.storage.json_utils import encode_json
from tastepick.storage.models import Content
from tastepick.storage.repo_embedding_jobs import EmbeddingJobsRepo

logger = get_logger(__name__)

CONTENT_TYPES = ("movie", "tv", "documentary")


class ContentRepo:
    """Repository for the content catalogue."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, content_id: str) -> Content | None:
        stmt = select(Content).where(Content.content_id == content_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_tmdb_id(self, tmdb_id: int) -> Content | None:
        stmt = select(Content).where(Content.tmdb_id == tmdb_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_content(
        self,
        tmdb_id: int,
        content_type: str,
        title: str,
        overview: str | None = None,
        release_date: str | None = None,
        poster_path: str | None = None,
        genres: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Content, bool]:
        """Get content by TMDB ID, creating it if missing.

        A newly created record gets an embedding job enqueued; existing
        records are returned untouched.

        Args:
            tmdb_id: TMDB ID
            content_type: 'movie', 'tv' or 'documentary'
            title: Display title
            overview: Synopsis text
            release_date: Release / first air date (YYYY-MM-DD)
            poster_path: TMDB poster path
            genres: Genre names
            metadata: Extra TMDB fields (vote_average, vote_count, ...)

        Returns:
            Tuple of (content, created)
        """
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Invalid content type: {content_type}")

        now = datetime.now(timezone.utc)
        insert_stmt = sqlite_insert(Content).values(
            content_id=uuid.uuid4().hex,
            tmdb_id=tmdb_id,
            type=content_type,
            title=title,
            overview=overview or None,
            release_date=release_date or None,
            poster_path=poster_path or None,
            genres_json=encode_json(genres or []),
            metadata_json=encode_json(metadata or {}),
            embedding_json=None,
            created_at=now,
            updated_at=now,
        )
        result = await self.session.execute(
            insert_stmt.on_conflict_do_nothing(index_elements=["tmdb_id"])
        )
        await self.session.commit()
        created = result.rowcount > 0

        content = await self.get_by_tmdb_id(tmdb_id)
        if content is None:
            raise RuntimeError(f"Content for tmdb_id={tmdb_id} vanished after insert")

        if created:
            logger.info(f"Created content {content.content_id} tmdb={tmdb_id} '{title}'")
            job_id = await EmbeddingJobsRepo(self.session).enqueue(content.content_id)
            if job_id:
                logger.debug(f"Enqueued embedding job {job_id} for {content.content_id}")
            else:
                # Losing the enqueue race rolls back and expires the row
                await self.session.refresh(content)

        return content, created

    async def count_content(self, embedded_only: bool = False) -> int:
        """Count catalogue items.

        Args:
            embedded_only: Only count items that have an embedding
        """
        stmt = select(func.count()).select_from(Content)
        if embedded_only:
            stmt = stmt.where(Content.embedding_json.is_not(None))
        result = await self.session.execute(stmt)
        return result.scalar() or 0
