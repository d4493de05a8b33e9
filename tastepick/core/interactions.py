"""User interaction writes that keep the taste vector current."""

from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.core.taste_profile import compute_taste_vector
from tastepick.errors import NotFoundError
from tastepick.logging import get_logger
from tastepick.storage import ContentRepo, DismissedRepo, InteractionsRepo, UsersRepo

logger = get_logger(__name__)


async def _require_user_and_content(session: AsyncSession, user_id: str, content_id: str) -> None:
    if not await UsersRepo(session).exists(user_id):
        raise NotFoundError("user", user_id)
    if await ContentRepo(session).get_by_id(content_id) is None:
        raise NotFoundError("content", content_id)


async def record_interaction(
    session: AsyncSession,
    user_id: str,
    content_id: str,
    status: str,
) -> list[float] | None:
    """Set the interaction status and recompute the taste vector.

    Returns:
        The recomputed taste vector

    Raises:
        NotFoundError: If the user or content does not exist
        ValueError: If the status is invalid
    """
    await _require_user_and_content(session, user_id, content_id)
    await InteractionsRepo(session).set_status(user_id, content_id, status)
    logger.info(f"Interaction user={user_id} content={content_id} status={status}")
    return await compute_taste_vector(session, user_id)


async def record_rating(
    session: AsyncSession,
    user_id: str,
    content_id: str,
    rating: float,
) -> float:
    """Rate content (0-10, half points) and recompute the taste vector.

    Returns:
        The stored rating

    Raises:
        NotFoundError: If the user or content does not exist
        ValueError: If the rating is outside [0, 10]
    """
    await _require_user_and_content(session, user_id, content_id)
    stored = await InteractionsRepo(session).set_rating(user_id, content_id, rating)
    logger.info(f"Rating user={user_id} content={content_id} rating={stored}")
    await compute_taste_vector(session, user_id)
    return stored


async def clear_rating(session: AsyncSession, user_id: str, content_id: str) -> bool:
    """Remove a rating; the item then counts with the default weight."""
    await _require_user_and_content(session, user_id, content_id)
    removed = await InteractionsRepo(session).remove_rating(user_id, content_id)
    if removed:
        await compute_taste_vector(session, user_id)
    return removed


async def remove_interaction(session: AsyncSession, user_id: str, content_id: str) -> bool:
    """Delete the interaction row and recompute the taste vector."""
    await _require_user_and_content(session, user_id, content_id)
    removed = await InteractionsRepo(session).remove_interaction(user_id, content_id)
    if removed:
        await compute_taste_vector(session, user_id)
    return removed


async def dismiss_recommendation(session: AsyncSession, user_id: str, content_id: str) -> bool:
    """Hide content from a user's future recommendations.

    Returns:
        True if newly dismissed, False if it already was
    """
    await _require_user_and_content(session, user_id, content_id)
    added = await DismissedRepo(session).add_dismissed(user_id, content_id)
    logger.info(f"Dismissed user={user_id} content={content_id} new={added}")
    return added
