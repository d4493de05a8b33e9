"""Core module containing the recommendation pipeline and domain types."""

from tastepick.core.candidates import retrieve_candidates
from tastepick.core.contracts import (
    ChatMessage,
    ChatModel,
    ContentSearch,
    ContentType,
    Embedder,
    InteractionStatus,
    RecommendationCandidate,
    WatchedItem,
)
from tastepick.core.diversity import diversify
from tastepick.core.embeddings import build_content_text, embed_content
from tastepick.core.explanation import explain, explain_candidates, fallback_explanation
from tastepick.core.interactions import (
    clear_rating,
    dismiss_recommendation,
    record_interaction,
    record_rating,
    remove_interaction,
)
from tastepick.core.mood import mood_to_candidates, parse_mood_queries
from tastepick.core.taste_profile import compute_taste_vector, weighted_taste_vector

__all__ = [
    # Contracts/Types
    "ChatMessage",
    "ChatModel",
    "ContentSearch",
    "ContentType",
    "Embedder",
    "InteractionStatus",
    "RecommendationCandidate",
    "WatchedItem",
    # Taste profile
    "compute_taste_vector",
    "weighted_taste_vector",
    # Retrieval and ranking
    "retrieve_candidates",
    "diversify",
    # Explanations
    "explain",
    "explain_candidates",
    "fallback_explanation",
    # Mood
    "mood_to_candidates",
    "parse_mood_queries",
    # Embeddings
    "build_content_text",
    "embed_content",
    # Interactions
    "record_interaction",
    "record_rating",
    "clear_rating",
    "remove_interaction",
    "dismiss_recommendation",
]
