"""Mood requests: free text to search queries to catalogue candidates."""

import json
from typing import Any, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.core.contracts import ChatMessage, ChatModel, ContentSearch, RecommendationCandidate
from tastepick.errors import NotFoundError
from tastepick.logging import get_logger
from tastepick.providers.tmdb_client import content_fields_from_tmdb
from tastepick.storage import (
    ContentRepo,
    DismissedRepo,
    InteractionsRepo,
    UsersRepo,
    cosine_distance,
    decode_vector,
)

logger = get_logger(__name__)

MAX_QUERIES = 5
HITS_PER_SEARCH = 3
MAX_LOOKUPS = 15
MEDIA_TYPES: tuple[Literal["movie", "tv"], ...] = ("movie", "tv")

MOOD_SYSTEM_PROMPT = (
    "You turn a viewer's mood or situation into search queries for a movie and "
    "TV database. Reply with ONLY a JSON array of 1 to 5 short search strings "
    '(titles, genres, themes or keywords), for example ["cozy mystery", "heist comedy"].'
)

_DECODER = json.JSONDecoder()


def build_mood_messages(mood_text: str) -> list[ChatMessage]:
    return [
        {"role": "system", "content": MOOD_SYSTEM_PROMPT},
        {"role": "user", "content": mood_text},
    ]


def _first_json_array(text: str) -> Any:
    start = text.find("[")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find("[", start + 1)
    return None


def parse_mood_queries(response: str | None, mood_text: str) -> list[str]:
    """Extract search queries from a model reply.

    Reads the first JSON array embedded in the reply; brackets inside the
    query strings are fine. Anything other than a non-empty list of
    non-empty strings falls back to the mood text itself.

    Args:
        response: Raw model reply
        mood_text: Original mood request

    Returns:
        Between 1 and 5 queries
    """
    fallback = [mood_text]
    if not response:
        return fallback

    parsed = _first_json_array(response)
    if not isinstance(parsed, list) or not parsed:
        return fallback
    if not all(isinstance(q, str) and q.strip() for q in parsed):
        return fallback

    return [q.strip() for q in parsed[:MAX_QUERIES]]


async def translate_mood(mood_text: str, chat: ChatModel | None = None) -> list[str]:
    """Ask the chat model for search queries; never raises for model failures."""
    if chat is None:
        from tastepick.llm import get_llm_adapter

        chat = get_llm_adapter()

    try:
        response = await chat.chat_complete(build_mood_messages(mood_text))
    except Exception as e:
        logger.warning(f"Mood translation failed, using raw mood text: {e}")
        return [mood_text]

    queries = parse_mood_queries(response, mood_text)
    logger.debug(f"Mood '{mood_text}' -> queries {queries}")
    return queries


async def collect_hits(
    queries: list[str],
    search: ContentSearch,
) -> list[tuple[Literal["movie", "tv"], dict[str, Any]]]:
    """Search each query for movies and TV, keeping the top hits.

    Hits are de-duplicated by (media type, TMDB ID) and capped at
    MAX_LOOKUPS. A failed search is logged and skipped.
    """
    seen: set[tuple[str, int]] = set()
    hits: list[tuple[Literal["movie", "tv"], dict[str, Any]]] = []

    for query in queries:
        for media_type in MEDIA_TYPES:
            if len(hits) >= MAX_LOOKUPS:
                return hits
            try:
                results = await search.search(query, media_type)
            except Exception as e:
                logger.warning(f"Mood search failed for {media_type} '{query}': {e}")
                continue

            for item in results[:HITS_PER_SEARCH]:
                if item.get("id") is None:
                    continue
                key = (media_type, int(item["id"]))
                if key in seen:
                    continue
                seen.add(key)
                hits.append((media_type, item))
                if len(hits) >= MAX_LOOKUPS:
                    return hits

    return hits


def _default_search() -> ContentSearch:
    from tastepick.providers.tmdb_client import TMDBContentSearch, get_tmdb_client

    return TMDBContentSearch(get_tmdb_client())


async def mood_to_candidates(
    session: AsyncSession,
    user_id: str,
    mood_text: str,
    limit: int = 5,
    chat: ChatModel | None = None,
    search: ContentSearch | None = None,
) -> list[RecommendationCandidate]:
    """Resolve a free-text mood into unseen catalogue candidates.

    Hits are added to the catalogue (queueing their embeddings) and returned
    in search order. Each carries its similarity to the user's taste vector
    when both vectors exist, otherwise similarity 0 and distance 1.

    Args:
        session: Database session
        user_id: User ID
        mood_text: Free-text mood request
        limit: Maximum number of candidates
        chat: Chat model (default: configured LLM adapter)
        search: Content search (default: TMDB)

    Returns:
        Up to ``limit`` candidates

    Raises:
        NotFoundError: If the user does not exist
        TMDBError: If no search provider is configured
    """
    found, taste_vector = await UsersRepo(session).get_taste_vector(user_id)
    if not found:
        raise NotFoundError("user", user_id)

    mood_text = mood_text.strip()
    queries = await translate_mood(mood_text, chat=chat)
    hits = await collect_hits(queries, search or _default_search())

    watched = await InteractionsRepo(session).list_watched_ids(user_id)
    dismissed = await DismissedRepo(session).list_dismissed_ids(user_id)
    excluded = watched | dismissed

    content_repo = ContentRepo(session)
    candidates: list[RecommendationCandidate] = []

    for media_type, item in hits:
        fields = content_fields_from_tmdb(item, media_type)
        if not fields["title"]:
            continue
        content, _ = await content_repo.get_or_create_content(**fields)
        if content.content_id in excluded:
            continue

        distance = 1.0
        embedding = decode_vector(content.embedding_json)
        if taste_vector is not None and embedding is not None and len(embedding) == len(taste_vector):
            distance = cosine_distance(embedding, taste_vector)

        candidates.append(RecommendationCandidate.from_content(content, distance))
        excluded.add(content.content_id)

    logger.info(
        f"Mood candidates for user={user_id}: queries={len(queries)}, "
        f"hits={len(hits)}, unseen={len(candidates)}, limit={limit}"
    )
    return candidates[:limit]
