"""LLM adapter exposing chat completion and embeddings to the recommendation core."""

from tastepick.llm.llm_adapter import chat_complete, embed_text
from tastepick.logging import get_logger

logger = get_logger(__name__)


class LLMAdapter:
    """Adapter binding the configured provider to the core's model interfaces.

    Implements both ``chat_complete`` (ChatModel) and ``embed`` (Embedder).
    Explanations and mood translation are latency-sensitive, so chat calls
    default to a single attempt; embedding failures are retried by the job
    queue rather than here.
    """

    def __init__(
        self,
        max_tokens: int = 500,
        temperature: float = 0.7,
        chat_retries: int = 1,
        embed_retries: int = 1,
        timeout: float | None = None,
    ) -> None:
        """Initialize the LLM adapter.

        Args:
            max_tokens: Maximum tokens in chat responses
            temperature: Sampling temperature for chat
            chat_retries: Total attempts per chat call
            embed_retries: Total attempts per embedding call
            timeout: Request timeout in seconds (default from config)
        """
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.chat_retries = chat_retries
        self.embed_retries = embed_retries
        self.timeout = timeout

    async def chat_complete(self, messages: list[dict[str, str]]) -> str:
        return await chat_complete(
            messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            max_retries=self.chat_retries,
            timeout=self.timeout,
        )

    async def embed(self, text: str) -> list[float]:
        return await embed_text(
            text,
            max_retries=self.embed_retries,
            timeout=self.timeout,
        )


_default_adapter: LLMAdapter | None = None


def get_llm_adapter() -> LLMAdapter:
    """Get the shared adapter instance."""
    global _default_adapter
    if _default_adapter is None:
        _default_adapter = LLMAdapter()
        logger.debug("LLM adapter created")
    return _default_adapter
