"""Embedding storage and cosine nearest-neighbour search."""

from datetime import datetime, timezone
from typing import Iterable, Sequence

import numpy as np
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.errors import DataIntegrityError
from tastepick.storage.json_utils import decode_vector, encode_vector
from tastepick.storage.models import Content


def cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine distance (1 - cosine similarity) from each row to the query.

    Rows or a query with zero norm carry no direction; their distance is
    reported as 1.0.

    Args:
        matrix: Array of shape (n, d)
        query: Array of shape (d,)

    Returns:
        Array of shape (n,) with distances in [0, 2]
    """
    row_norms = np.linalg.norm(matrix, axis=1)
    query_norm = np.linalg.norm(query)
    denom = row_norms * query_norm

    distances = np.ones(matrix.shape[0], dtype=np.float64)
    nonzero = denom > 0
    distances[nonzero] = 1.0 - (matrix[nonzero] @ query) / denom[nonzero]
    # Rounding can push identical vectors a hair below zero
    return np.clip(distances, 0.0, 2.0)


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine distance between two vectors of equal length."""
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    matrix = np.asarray([a], dtype=np.float64)
    return float(cosine_distances(matrix, np.asarray(b, dtype=np.float64))[0])


class VectorStore:
    """Per-item embedding vectors with similarity search.

    Vectors live in ``content.embedding_json``; search loads the embedded,
    non-excluded rows and ranks them in process.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_embedding(self, content_id: str) -> list[float] | None:
        stmt = select(Content.embedding_json).where(Content.content_id == content_id)
        result = await self.session.execute(stmt)
        return decode_vector(result.scalar_one_or_none())

    async def set_embedding(self, content_id: str, vector: Sequence[float]) -> None:
        """Store (or replace) the embedding for a content item."""
        stmt = (
            update(Content)
            .where(Content.content_id == content_id)
            .values(
                embedding_json=encode_vector(vector),
                updated_at=datetime.now(timezone.utc),
            )
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def nearest_neighbours(
        self,
        query_vector: Sequence[float],
        exclude_ids: Iterable[str],
        limit: int,
    ) -> list[tuple[Content, float]]:
        """Find embedded content closest to the query vector.

        Args:
            query_vector: Vector to compare against
            exclude_ids: Content IDs that must not be returned
            limit: Maximum number of results

        Returns:
            (content, cosine_distance) pairs in ascending distance order;
            equal distances keep catalogue order
        """
        if limit <= 0:
            return []

        excluded = set(exclude_ids)
        stmt = select(Content).where(Content.embedding_json.is_not(None))
        if excluded:
            stmt = stmt.where(Content.content_id.not_in(excluded))
        stmt = stmt.order_by(Content.created_at.asc(), Content.content_id.asc())

        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())
        if not rows:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        vectors = [decode_vector(row.embedding_json) for row in rows]
        mismatched = [row.content_id for row, vec in zip(rows, vectors) if len(vec) != query.shape[0]]
        if mismatched:
            raise DataIntegrityError(
                f"Embedding dimension mismatch with query ({query.shape[0]}) "
                f"for content: {', '.join(mismatched[:5])}"
            )

        distances = cosine_distances(np.asarray(vectors, dtype=np.float64), query)
        order = np.argsort(distances, kind="stable")[:limit]
        return [(rows[i], float(distances[i])) for i in order]
