"""LLM module for chat completion and embeddings."""

from tastepick.llm.adapter import LLMAdapter, get_llm_adapter
from tastepick.llm.llm_adapter import (
    LLMDisabledError,
    LLMError,
    LLMRateLimitError,
    chat_complete,
    embed_text,
)

__all__ = [
    "LLMAdapter",
    "get_llm_adapter",
    "chat_complete",
    "embed_text",
    "LLMError",
    "LLMDisabledError",
    "LLMRateLimitError",
]
