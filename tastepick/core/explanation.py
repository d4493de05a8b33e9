"""Natural-language explanations for recommendations.

Explanations are best effort: any model failure degrades to a fixed
template that names the recommended title.
"""

import asyncio
from dataclasses import replace

from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.core.contracts import ChatMessage, ChatModel, RecommendationCandidate, WatchedItem
from tastepick.logging import get_logger
from tastepick.storage import InteractionsRepo

logger = get_logger(__name__)

HISTORY_SIZE = 10

SYSTEM_PROMPT = (
    "You are a helpful movie and TV recommendation assistant. "
    "Generate brief, personalised explanations for content recommendations "
    "based on a user's viewing history. Keep explanations concise (2-3 sentences) "
    "and reference specific titles from their history when relevant."
)

EMPTY_HISTORY = "No watched content yet."


def fallback_explanation(title: str, mood: str | None = None) -> str:
    if mood:
        return f'This matches your mood "{mood}": we think you\'ll enjoy "{title}".'
    return f'Based on your viewing history, we think you\'ll enjoy "{title}".'


def format_history(history: list[WatchedItem]) -> str:
    """Render watch history as one line per title, e.g. 'Heat (1995) - rated 8/10'."""
    if not history:
        return EMPTY_HISTORY

    lines = []
    for item in history:
        line = f"- {item.title}"
        if item.year:
            line += f" ({item.year})"
        if item.rating is not None:
            line += f" - rated {item.rating:g}/10"
        lines.append(line)
    return "\n".join(lines)


def build_explanation_messages(
    history: list[WatchedItem],
    candidate: RecommendationCandidate,
    mood: str | None = None,
) -> list[ChatMessage]:
    """Build the chat messages asking for a recommendation explanation."""
    kind = {"movie": "movie", "documentary": "documentary"}.get(candidate.type, "TV show")

    title_line = f'"{candidate.title}"'
    if candidate.year:
        title_line += f" ({candidate.year})"

    parts = [f"Based on this user's viewing history:\n\n{format_history(history)}\n"]
    if mood:
        parts.append(f'They asked for something matching this mood: "{mood}"\n')
    parts.append(f"Explain why you're recommending this {kind}: {title_line}\n")
    parts.append(f"Description: {candidate.overview or 'No description available.'}\n")
    parts.append(
        "Provide a brief, personalised explanation (2-3 sentences) of why this "
        "matches their taste. Be specific and conversational."
    )

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(parts)},
    ]


async def load_history(session: AsyncSession, user_id: str, limit: int = HISTORY_SIZE) -> list[WatchedItem]:
    rows = await InteractionsRepo(session).list_recent_watched(user_id, limit=limit)
    return [
        WatchedItem(
            title=content.title,
            type=content.type,
            rating=interaction.rating,
            release_date=content.release_date,
        )
        for content, interaction in rows
    ]


def _default_chat_model() -> ChatModel:
    from tastepick.llm import get_llm_adapter

    return get_llm_adapter()


async def generate_explanation(
    history: list[WatchedItem],
    candidate: RecommendationCandidate,
    chat: ChatModel | None = None,
    mood: str | None = None,
) -> str:
    """Ask the chat model for an explanation, falling back to the template.

    Never raises for model failures.
    """
    chat = chat or _default_chat_model()
    messages = build_explanation_messages(history, candidate, mood=mood)

    try:
        text = (await chat.chat_complete(messages) or "").strip()
    except Exception as e:
        logger.warning(f"Explanation failed for content={candidate.content_id}: {e}")
        return fallback_explanation(candidate.title, mood)

    if not text:
        logger.warning(f"Empty explanation for content={candidate.content_id}")
        return fallback_explanation(candidate.title, mood)

    return text


async def explain(
    session: AsyncSession,
    user_id: str,
    candidate: RecommendationCandidate,
    chat: ChatModel | None = None,
    mood: str | None = None,
) -> str:
    """Explain one recommendation using the user's recent watch history.

    Args:
        session: Database session
        user_id: User ID
        candidate: Recommended item
        chat: Chat model (default: configured LLM adapter)
        mood: Mood text when the candidate came from a mood request

    Returns:
        Explanation text; the fixed template when the model fails
    """
    history = await load_history(session, user_id)
    return await generate_explanation(history, candidate, chat=chat, mood=mood)


async def explain_candidates(
    session: AsyncSession,
    user_id: str,
    candidates: list[RecommendationCandidate],
    chat: ChatModel | None = None,
    mood: str | None = None,
) -> list[RecommendationCandidate]:
    """Attach explanations to candidates, generating them concurrently.

    History is loaded once; each explanation fails independently.
    """
    if not candidates:
        return []

    history = await load_history(session, user_id)
    chat = chat or _default_chat_model()
    texts = await asyncio.gather(
        *(generate_explanation(history, c, chat=chat, mood=mood) for c in candidates)
    )
    return [replace(c, explanation=text) for c, text in zip(candidates, texts)]
