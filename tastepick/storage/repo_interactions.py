"""Repository for user/content interactions (status, rating, watch time)."""

import math
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.storage.json_utils import decode_vector
from tastepick.storage.models import Content, UserContent

VALID_STATUSES = ("watched", "to_watch", "favourite")


def round_rating(rating: float) -> float:
    """Validate a 0-10 rating and round it to half-point precision, ties up.

    Raises:
        ValueError: If the rating is outside [0, 10]
    """
    if rating < 0 or rating > 10:
        raise ValueError(f"Rating must be between 0 and 10, got {rating}")
    return math.floor(rating * 2 + 0.5) / 2


class InteractionsRepo:
    """Repository for the user_content table.

    Exactly one row exists per (user, content) pair; every write is an
    upsert on that pair.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_interaction(self, user_id: str, content_id: str) -> UserContent | None:
        stmt = select(UserContent).where(
            UserContent.user_id == user_id,
            UserContent.content_id == content_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_status(self, user_id: str, content_id: str, status: str) -> None:
        """Create or update the status for a (user, content) pair.

        Marking content as watched stamps ``watched_at``.

        Args:
            user_id: User ID
            content_id: Content ID
            status: One of watched, to_watch, favourite
        """
        if status not in VALID_STATUSES:
            raise ValueError(f"Invalid status: {status}")

        now = datetime.now(timezone.utc)
        values = {
            "user_id": user_id,
            "content_id": content_id,
            "status": status,
            "rating": None,
            "watched_at": now if status == "watched" else None,
            "created_at": now,
            "updated_at": now,
        }
        set_on_conflict = {"status": status, "updated_at": now}
        if status == "watched":
            set_on_conflict["watched_at"] = now

        stmt = sqlite_insert(UserContent).values(**values).on_conflict_do_update(
            index_elements=["user_id", "content_id"],
            set_=set_on_conflict,
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def set_rating(self, user_id: str, content_id: str, rating: float) -> float:
        """Create or update the rating for a (user, content) pair.

        A new row is created with status ``watched``; an existing row keeps
        its status.

        Args:
            user_id: User ID
            content_id: Content ID
            rating: Rating on a 0-10 scale

        Returns:
            The stored (half-point rounded) rating
        """
        rounded = round_rating(rating)
        now = datetime.now(timezone.utc)

        stmt = sqlite_insert(UserContent).values(
            user_id=user_id,
            content_id=content_id,
            status="watched",
            rating=rounded,
            watched_at=now,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=["user_id", "content_id"],
            set_={"rating": rounded, "updated_at": now},
        )
        await self.session.execute(stmt)
        await self.session.commit()
        return rounded

    async def remove_rating(self, user_id: str, content_id: str) -> bool:
        """Clear the rating, keeping the interaction row.

        Returns:
            True if a row was updated
        """
        stmt = (
            update(UserContent)
            .where(
                UserContent.user_id == user_id,
                UserContent.content_id == content_id,
            )
            .values(rating=None, updated_at=datetime.now(timezone.utc))
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def remove_interaction(self, user_id: str, content_id: str) -> bool:
        """Delete the interaction row entirely.

        Returns:
            True if a row was deleted
        """
        stmt = delete(UserContent).where(
            UserContent.user_id == user_id,
            UserContent.content_id == content_id,
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def list_watched_ids(self, user_id: str) -> set[str]:
        """Get IDs of all content the user has watched."""
        stmt = select(UserContent.content_id).where(
            UserContent.user_id == user_id,
            UserContent.status == "watched",
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_watched_embeddings(
        self,
        user_id: str,
    ) -> list[tuple[list[float], float | None]]:
        """Get (embedding, rating) pairs for watched content that has an embedding.

        Rows come back in a stable order (by content ID) so repeated
        computations over unchanged data are identical.
        """
        stmt = (
            select(Content.embedding_json, UserContent.rating)
            .join(Content, Content.content_id == UserContent.content_id)
            .where(
                UserContent.user_id == user_id,
                UserContent.status == "watched",
                Content.embedding_json.is_not(None),
            )
            .order_by(UserContent.content_id)
        )
        result = await self.session.execute(stmt)
        return [(decode_vector(embedding_json), rating) for embedding_json, rating in result.all()]

    async def list_recent_watched(
        self,
        user_id: str,
        limit: int = 10,
    ) -> list[tuple[Content, UserContent]]:
        """Get the most recently watched content, newest first.

        Args:
            user_id: User ID
            limit: Maximum number of rows

        Returns:
            List of (content, interaction) pairs
        """
        stmt = (
            select(Content, UserContent)
            .join(Content, Content.content_id == UserContent.content_id)
            .where(
                UserContent.user_id == user_id,
                UserContent.status == "watched",
            )
            .order_by(UserContent.watched_at.desc().nulls_last(), UserContent.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(content, interaction) for content, interaction in result.all()]
