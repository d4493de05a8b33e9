"""Content embedding: text construction and vector storage."""

from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.config import config
from tastepick.core.contracts import Embedder
from tastepick.errors import ExternalServiceError, NotFoundError
from tastepick.logging import get_logger
from tastepick.storage import ContentRepo, VectorStore, decode_genres

logger = get_logger(__name__)


def build_content_text(title: str, overview: str | None, genres: list[str] | None) -> str:
    """Build the text that represents a content item for embedding.

    Format: ``Title: ...`` then ``Synopsis: ...`` then ``Genres: a, b``,
    separated by blank lines; missing parts are left out.
    """
    parts = [f"Title: {title}"]
    if overview:
        parts.append(f"Synopsis: {overview}")
    if genres:
        parts.append(f"Genres: {', '.join(genres)}")
    return "\n\n".join(parts)


async def embed_content(
    session: AsyncSession,
    content_id: str,
    embedder: Embedder | None = None,
) -> list[float]:
    """Generate and store the embedding for one content item.

    Args:
        session: Database session
        content_id: Content ID
        embedder: Embedder (default: configured LLM adapter)

    Returns:
        The stored vector

    Raises:
        NotFoundError: If the content does not exist
        ExternalServiceError: If the embedder fails or returns the wrong dimension
    """
    content = await ContentRepo(session).get_by_id(content_id)
    if content is None:
        raise NotFoundError("content", content_id)

    if embedder is None:
        from tastepick.llm import get_llm_adapter

        embedder = get_llm_adapter()

    genres = decode_genres(content.genres_json)
    text = build_content_text(content.title, content.overview, genres)
    vector = await embedder.embed(text)

    if len(vector) != config.embedding_dimension:
        raise ExternalServiceError(
            f"Embedding for content={content_id} has dimension {len(vector)}, "
            f"expected {config.embedding_dimension}"
        )

    await VectorStore(session).set_embedding(content_id, vector)
    logger.info(f"Stored embedding for content={content_id} ({len(vector)} dims)")
    return vector
