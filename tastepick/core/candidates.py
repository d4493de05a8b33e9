"""Candidate retrieval by vector similarity to the user's taste."""

from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.core.contracts import RecommendationCandidate
from tastepick.core.diversity import diversify
from tastepick.errors import NotFoundError
from tastepick.logging import get_logger
from tastepick.storage import DismissedRepo, InteractionsRepo, UsersRepo, VectorStore

logger = get_logger(__name__)

POOL_FACTOR = 2


async def retrieve_candidates(
    session: AsyncSession,
    user_id: str,
    limit: int = 20,
) -> list[RecommendationCandidate]:
    """Get diversified recommendation candidates for a user.

    Fetches ``limit * 2`` nearest neighbours of the taste vector, excluding
    watched and dismissed content, then re-ranks them for type variety.

    Args:
        session: Database session
        user_id: User ID
        limit: Maximum number of candidates

    Returns:
        Up to ``limit`` candidates; empty if the user has no taste vector yet

    Raises:
        NotFoundError: If the user does not exist
        DataIntegrityError: If stored embeddings disagree in dimension
    """
    found, taste_vector = await UsersRepo(session).get_taste_vector(user_id)
    if not found:
        raise NotFoundError("user", user_id)

    if taste_vector is None:
        logger.info(f"No taste vector for user={user_id}, returning no candidates")
        return []

    watched = await InteractionsRepo(session).list_watched_ids(user_id)
    dismissed = await DismissedRepo(session).list_dismissed_ids(user_id)
    excluded = watched | dismissed

    neighbours = await VectorStore(session).nearest_neighbours(
        taste_vector,
        exclude_ids=excluded,
        limit=limit * POOL_FACTOR,
    )
    pool = [RecommendationCandidate.from_content(content, distance) for content, distance in neighbours]

    candidates = diversify(pool, limit)
    logger.info(
        f"Candidates for user={user_id}: pool={len(pool)}, "
        f"excluded={len(excluded)}, returned={len(candidates)}"
    )
    return candidates
