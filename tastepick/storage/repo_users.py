"""Repository for user operations."""

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.storage.json_utils import decode_vector, encode_vector
from tastepick.storage.models import User


class UsersRepo:
    """Repository for users and their taste vectors."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> User | None:
        """Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User instance or None
        """
        stmt = select(User).where(User.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_user(self, user_id: str) -> User:
        """Get existing user or create a new one.

        Args:
            user_id: User ID

        Returns:
            User instance (new or existing)
        """
        user = await self.get_user(user_id)
        if user is not None:
            return user

        now = datetime.now(timezone.utc)
        user = User(
            user_id=user_id,
            taste_embedding_json=None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def exists(self, user_id: str) -> bool:
        stmt = select(User.user_id).where(User.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_taste_vector(self, user_id: str) -> tuple[bool, list[float] | None]:
        """Read the stored taste vector.

        Args:
            user_id: User ID

        Returns:
            Tuple of (user_exists, taste_vector_or_none)
        """
        stmt = select(User.taste_embedding_json).where(User.user_id == user_id)
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return False, None
        return True, decode_vector(row[0])

    async def set_taste_vector(
        self,
        user_id: str,
        vector: Sequence[float] | None,
    ) -> None:
        """Replace the user's taste vector (None clears it).

        Issued as a single UPDATE so readers never see a partial vector.

        Args:
            user_id: User ID
            vector: New taste vector, or None
        """
        stmt = (
            update(User)
            .where(User.user_id == user_id)
            .values(
                taste_embedding_json=encode_vector(vector),
                updated_at=datetime.now(timezone.utc),
            )
        )
        await self.session.execute(stmt)
        await self.session.commit()
