"""LLM calls for chat completion and text embeddings via OpenAI and Anthropic APIs."""

import asyncio
from typing import Any

import httpx

from tastepick.config import config
from tastepick.errors import ExternalServiceError
from tastepick.logging import get_logger

logger = get_logger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
BASE_BACKOFF = 1.0


class LLMError(ExternalServiceError):
    """Chat-completion or embedding API error."""


class LLMDisabledError(LLMError):
    """Raised when LLM is disabled or unconfigured but a call is attempted."""


class LLMRateLimitError(LLMError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int | None = None):
        super().__init__("Rate limit exceeded", status_code=429)
        self.retry_after = retry_after


def _error_from_response(response: httpx.Response, provider: str) -> LLMError:
    """Map a non-200 response to the matching exception."""
    if response.status_code == 429:
        retry_after = response.headers.get("retry-after")
        return LLMRateLimitError(
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
        )

    if response.status_code >= 500:
        return LLMError(
            f"{provider} server error: {response.status_code}",
            status_code=response.status_code,
        )

    try:
        error_data = response.json()
        error_msg = error_data.get("error", {}).get("message", f"HTTP {response.status_code}")
    except Exception:
        error_msg = f"HTTP {response.status_code}"

    return LLMError(error_msg, status_code=response.status_code)


async def _call_openai(
    client: httpx.AsyncClient,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
) -> str:
    """Call OpenAI chat completions API."""
    headers = {
        "Authorization": f"Bearer {config.openai_api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "model": config.openai_model,
        "messages": list(messages),
        "max_tokens": max_tokens,
        "temperature": temperature,
    }

    response = await client.post(OPENAI_CHAT_URL, headers=headers, json=payload)

    if response.status_code != 200:
        raise _error_from_response(response, "OpenAI")

    data = response.json()
    choices = data.get("choices", [])
    if not choices:
        raise LLMError("OpenAI returned no completion choices")

    content = (choices[0].get("message", {}).get("content") or "").strip()
    if not content:
        raise LLMError("OpenAI returned empty content")

    logger.debug(f"OpenAI tokens: {data.get('usage', {}).get('total_tokens', 'N/A')}")
    return content


async def _call_anthropic(
    client: httpx.AsyncClient,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
) -> str:
    """Call Anthropic Messages API.

    System messages are lifted into the top-level ``system`` field.
    """
    headers = {
        "x-api-key": config.anthropic_api_key or "",
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }
    system_prompt = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
    payload: dict[str, Any] = {
        "model": config.anthropic_model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] != "system"
        ],
    }
    if system_prompt:
        payload["system"] = system_prompt

    response = await client.post(ANTHROPIC_API_URL, headers=headers, json=payload)

    if response.status_code != 200:
        raise _error_from_response(response, "Anthropic")

    data = response.json()
    text_parts = [
        block.get("text", "")
        for block in data.get("content", [])
        if block.get("type") == "text"
    ]
    result = "\n".join(text_parts).strip()
    if not result:
        raise LLMError("Anthropic returned empty content")

    usage = data.get("usage", {})
    logger.debug(
        f"Anthropic tokens: in={usage.get('input_tokens', '?')}, "
        f"out={usage.get('output_tokens', '?')}"
    )
    return result


async def _call_openai_embeddings(client: httpx.AsyncClient, text: str) -> list[float]:
    """Call OpenAI embeddings API."""
    headers = {
        "Authorization": f"Bearer {config.openai_api_key}",
        "Content-Type": "application/json",
    }
    payload = {"model": config.openai_embedding_model, "input": text}

    response = await client.post(OPENAI_EMBEDDINGS_URL, headers=headers, json=payload)

    if response.status_code != 200:
        raise _error_from_response(response, "OpenAI")

    data = response.json().get("data") or []
    if not data:
        raise LLMError("OpenAI returned no embedding data")

    embedding = data[0].get("embedding") or []
    if len(embedding) != config.embedding_dimension:
        raise LLMError(
            f"Unexpected embedding dimension: expected {config.embedding_dimension}, "
            f"got {len(embedding)}"
        )
    return [float(x) for x in embedding]


async def _with_retries(call, label: str, max_retries: int, timeout: float):
    """Run ``call(client)`` with backoff on rate limits, 5xx and transport errors.

    Args:
        call: Coroutine function taking an httpx.AsyncClient
        label: Provider label for logs
        max_retries: Total attempts (1 means no retry)
        timeout: Per-request timeout in seconds

    Raises:
        LLMError: On API error after attempts are exhausted; timeouts and
            transport errors are wrapped as LLMError too
    """
    attempts = max(1, max_retries)
    last_error: Exception | None = None

    async with httpx.AsyncClient(timeout=timeout) as client:
        for attempt in range(attempts):
            try:
                return await call(client)

            except LLMRateLimitError as e:
                wait_time = e.retry_after or (BASE_BACKOFF * (2 ** attempt))
                logger.warning(
                    f"{label} rate limited, retry after {wait_time}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                last_error = e
                if attempt < attempts - 1:
                    await asyncio.sleep(wait_time)
                    continue

            except LLMError as e:
                if e.status_code and e.status_code >= 500:
                    wait_time = BASE_BACKOFF * (2 ** attempt)
                    logger.warning(
                        f"{label} server error, retry in {wait_time}s "
                        f"(attempt {attempt + 1}/{attempts})"
                    )
                    last_error = e
                    if attempt < attempts - 1:
                        await asyncio.sleep(wait_time)
                        continue
                    break
                raise

            except httpx.TimeoutException as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"{label} timeout after {timeout}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                last_error = e
                if attempt < attempts - 1:
                    await asyncio.sleep(wait_time)
                    continue

            except httpx.RequestError as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"{label} request error: {e} "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                last_error = e
                if attempt < attempts - 1:
                    await asyncio.sleep(wait_time)
                    continue

    if isinstance(last_error, LLMError):
        raise last_error
    raise LLMError(f"{label} call failed after {attempts} attempt(s): {last_error!r}")


async def chat_complete(
    messages: list[dict[str, str]],
    max_tokens: int = 500,
    temperature: float = 0.7,
    max_retries: int = 1,
    timeout: float | None = None,
) -> str:
    """Generate a chat completion using the configured provider.

    Args:
        messages: Conversation messages (system/user/assistant)
        max_tokens: Maximum tokens in response
        temperature: Sampling temperature
        max_retries: Total attempts; the default is a single attempt
        timeout: Request timeout in seconds (default from config)

    Returns:
        Generated text, stripped

    Raises:
        LLMDisabledError: If LLM is disabled or the provider key is missing
        LLMError: On API error, timeout or malformed payload
    """
    if not config.llm_enabled:
        raise LLMDisabledError("LLM is disabled in configuration")

    if config.llm_provider == "anthropic":
        if not config.anthropic_api_key:
            raise LLMDisabledError("ANTHROPIC_API_KEY is not configured")
        call_fn = _call_anthropic
        label = f"Anthropic/{config.anthropic_model}"
    else:
        if not config.openai_api_key:
            raise LLMDisabledError("OPENAI_API_KEY is not configured")
        call_fn = _call_openai
        label = f"OpenAI/{config.openai_model}"

    return await _with_retries(
        lambda client: call_fn(client, messages, max_tokens, temperature),
        label,
        max_retries,
        timeout or config.llm_timeout_seconds,
    )


async def embed_text(
    text: str,
    max_retries: int = 1,
    timeout: float | None = None,
) -> list[float]:
    """Embed text with the configured OpenAI embedding model.

    Args:
        text: Text to embed
        max_retries: Total attempts; failed jobs are retried by the queue
        timeout: Request timeout in seconds (default from config)

    Returns:
        Embedding vector of ``config.embedding_dimension`` floats

    Raises:
        LLMDisabledError: If OPENAI_API_KEY is missing
        LLMError: On API error or unexpected dimension
    """
    if not config.openai_api_key:
        raise LLMDisabledError("OPENAI_API_KEY is not configured")

    return await _with_retries(
        lambda client: _call_openai_embeddings(client, text),
        f"OpenAI/{config.openai_embedding_model}",
        max_retries,
        timeout or config.llm_timeout_seconds,
    )
