"""Tests for diversity re-ranking."""

import pytest

from tastepick.core.contracts import RecommendationCandidate
from tastepick.core.diversity import diversify


def make_candidate(index: int, content_type: str, similarity: float) -> RecommendationCandidate:
    return RecommendationCandidate(
        content_id=f"c{index}",
        tmdb_id=index,
        type=content_type,
        title=f"Title {index}",
        similarity=similarity,
        distance=1 - similarity,
    )


@pytest.fixture
def movie_heavy_pool():
    """Nine close movies followed by one weaker TV show."""
    pool = [make_candidate(i, "movie", 0.99 - i * 0.01) for i in range(9)]
    pool.append(make_candidate(9, "tv", 0.5))
    return pool


def test_pool_not_larger_than_limit_is_returned_unchanged():
    pool = [
        make_candidate(0, "movie", 0.9),
        make_candidate(1, "movie", 0.8),
        make_candidate(2, "tv", 0.7),
    ]

    assert diversify(pool, 3) == pool
    assert diversify(pool, 5) == pool
    assert diversify([], 5) == []


def test_type_streak_is_broken_by_other_type(movie_heavy_pool):
    result = diversify(movie_heavy_pool, 5)

    assert [c.type for c in result] == ["movie", "movie", "tv", "movie", "movie"]
    assert [c.content_id for c in result] == ["c0", "c1", "c9", "c2", "c3"]


def test_output_keeps_original_similarity(movie_heavy_pool):
    result = diversify(movie_heavy_pool, 5)

    by_id = {c.content_id: c for c in movie_heavy_pool}
    for candidate in result:
        assert candidate.similarity == by_id[candidate.content_id].similarity
        assert candidate.distance == by_id[candidate.content_id].distance


def test_input_pool_is_not_mutated(movie_heavy_pool):
    snapshot = list(movie_heavy_pool)

    diversify(movie_heavy_pool, 4)

    assert movie_heavy_pool == snapshot


def test_result_length_and_uniqueness(movie_heavy_pool):
    result = diversify(movie_heavy_pool, 7)

    assert len(result) == 7
    assert len({c.content_id for c in result}) == 7


def test_ties_go_to_earlier_pool_position():
    pool = [
        make_candidate(0, "movie", 0.8),
        make_candidate(1, "tv", 0.8),
        make_candidate(2, "documentary", 0.8),
    ]

    result = diversify(pool, 2)

    assert [c.content_id for c in result] == ["c0", "c1"]


def test_alternating_types_when_scores_are_low():
    """Below the near-duplicate threshold only the repeat-type damping applies."""
    pool = [
        make_candidate(0, "movie", 0.80),
        make_candidate(1, "movie", 0.79),
        make_candidate(2, "movie", 0.78),
        make_candidate(3, "tv", 0.75),
        make_candidate(4, "tv", 0.74),
    ]

    result = diversify(pool, 4)

    # 0.79 * 0.9 = 0.711 < 0.75, so the TV show comes second
    assert [c.content_id for c in result] == ["c0", "c3", "c1", "c4"]


def test_deterministic(movie_heavy_pool):
    assert diversify(movie_heavy_pool, 5) == diversify(movie_heavy_pool, 5)
