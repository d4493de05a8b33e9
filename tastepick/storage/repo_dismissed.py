"""Repository for dismissed recommendation operations."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.storage.models import DismissedRecommendation


class DismissedRepo:
    """Repository for recommendations a user has dismissed."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_dismissed(self, user_id: str, content_id: str) -> bool:
        """Dismiss a content item for a user.

        Args:
            user_id: User ID
            content_id: Content ID

        Returns:
            True if added, False if already dismissed
        """
        insert_stmt = sqlite_insert(DismissedRecommendation).values(
            user_id=user_id,
            content_id=content_id,
            created_at=datetime.now(timezone.utc),
        )
        upsert_stmt = insert_stmt.on_conflict_do_nothing(
            index_elements=["user_id", "content_id"]
        )
        result = await self.session.execute(upsert_stmt)
        await self.session.commit()

        return result.rowcount > 0

    async def list_dismissed_ids(self, user_id: str) -> set[str]:
        """Get all dismissed content IDs for a user."""
        stmt = select(DismissedRecommendation.content_id).where(
            DismissedRecommendation.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())
