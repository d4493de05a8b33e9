"""Taste profile: rating-weighted average of watched content embeddings."""

from typing import Sequence

import numpy as np
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.errors import DataIntegrityError, NotFoundError
from tastepick.logging import get_logger
from tastepick.storage import InteractionsRepo, UsersRepo

logger = get_logger(__name__)

DEFAULT_RATING = 5.0
MIN_WEIGHT = 0.1


def rating_weight(rating: float | None) -> float:
    """Raw weight for a rating on the 0-10 scale; unrated counts as 5."""
    value = DEFAULT_RATING if rating is None else rating
    return max(MIN_WEIGHT, value / 10)


def weighted_taste_vector(
    pairs: Sequence[tuple[Sequence[float], float | None]],
) -> list[float] | None:
    """Combine (embedding, rating) pairs into one taste vector.

    Weights are normalised to sum to 1, so the result lies in the convex
    hull of the inputs.

    Args:
        pairs: (embedding, rating) for each watched item with an embedding

    Returns:
        Weighted mean vector, or None when there is nothing to combine

    Raises:
        DataIntegrityError: If embeddings differ in dimension
    """
    if not pairs:
        return None

    dimension = len(pairs[0][0])
    for index, (embedding, _) in enumerate(pairs):
        if len(embedding) != dimension:
            raise DataIntegrityError(
                f"Embedding dimension mismatch at position {index}: "
                f"expected {dimension}, got {len(embedding)}"
            )

    weights = np.array([rating_weight(rating) for _, rating in pairs], dtype=np.float64)
    weights = weights / weights.sum()
    matrix = np.asarray([embedding for embedding, _ in pairs], dtype=np.float64)

    return (weights @ matrix).tolist()


async def compute_taste_vector(session: AsyncSession, user_id: str) -> list[float] | None:
    """Recompute and persist a user's taste vector from their watch history.

    Always a full recomputation; a user with no embedded watched content
    gets their stored vector cleared.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        The new taste vector, or None

    Raises:
        NotFoundError: If the user does not exist
        DataIntegrityError: If watched embeddings differ in dimension
    """
    users_repo = UsersRepo(session)
    if not await users_repo.exists(user_id):
        raise NotFoundError("user", user_id)

    pairs = await InteractionsRepo(session).list_watched_embeddings(user_id)
    vector = weighted_taste_vector(pairs)

    await users_repo.set_taste_vector(user_id, vector)

    if vector is None:
        logger.info(f"Taste vector cleared for user={user_id} (no embedded watch history)")
    else:
        logger.info(f"Taste vector updated for user={user_id} from {len(pairs)} items")

    return vector
