"""Greedy re-ranking that trades similarity for content-type variety."""

from typing import Sequence

from tastepick.core.contracts import RecommendationCandidate

# Penalties applied to a candidate's working score
REPEAT_TYPE_PENALTY = 0.9
STREAK_PENALTY = 0.5
STREAK_LENGTH = 2
NEAR_DUPLICATE_PENALTY = 0.7
NEAR_DUPLICATE_SIMILARITY = 0.9
RECENT_WINDOW = 3


def _score(
    candidate: RecommendationCandidate,
    selected: list[RecommendationCandidate],
    last_type: str | None,
    consecutive: int,
) -> float:
    score = candidate.similarity

    if candidate.type == last_type:
        score *= STREAK_PENALTY if consecutive >= STREAK_LENGTH else REPEAT_TYPE_PENALTY

    for recent in selected[-RECENT_WINDOW:]:
        if recent.type == candidate.type and candidate.similarity > NEAR_DUPLICATE_SIMILARITY:
            score *= NEAR_DUPLICATE_PENALTY

    return score


def diversify(
    pool: Sequence[RecommendationCandidate],
    limit: int,
) -> list[RecommendationCandidate]:
    """Pick ``limit`` candidates from a similarity-ordered pool.

    Each round scores every remaining candidate from its similarity, damped
    when it repeats the last selected type (harder after a streak of two)
    and again for each of the last three picks of its type when it is
    itself a very close match. The best score wins; ties go to the earlier
    pool position. Returned candidates keep their original similarity.

    Pools no larger than ``limit`` are returned as they are.

    Args:
        pool: Candidates ordered by descending similarity
        limit: Number of candidates to select

    Returns:
        Selected candidates in pick order
    """
    if len(pool) <= limit:
        return list(pool)

    remaining = list(range(len(pool)))
    selected: list[RecommendationCandidate] = []
    last_type: str | None = None
    consecutive = 0

    while len(selected) < limit and remaining:
        best_pos = 0
        best_score = float("-inf")
        for pos, index in enumerate(remaining):
            score = _score(pool[index], selected, last_type, consecutive)
            if score > best_score:
                best_score = score
                best_pos = pos

        chosen = pool[remaining.pop(best_pos)]
        selected.append(chosen)

        if chosen.type == last_type:
            consecutive += 1
        else:
            consecutive = 1
        last_type = chosen.type

    return selected
