"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name, str(default))
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name, str(default))
    try:
        return float(value)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    fallback = "true" if default else "false"
    return os.getenv(name, fallback).lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    # Server settings
    host: str
    port: int
    database_url: str
    admin_token: str | None
    log_level: str

    # TMDB settings
    tmdb_bearer_token: str | None
    tmdb_language: str
    tmdb_region: str

    # Recommendation settings
    recs_default_limit: int
    recs_max_limit: int
    mood_default_limit: int
    mood_max_limit: int

    # OpenAI / LLM settings
    openai_api_key: str | None
    openai_model: str
    openai_embedding_model: str
    embedding_dimension: int
    anthropic_api_key: str | None
    anthropic_model: str
    llm_provider: str  # "openai" or "anthropic"
    llm_enabled: bool
    llm_timeout_seconds: float

    # Embedding worker
    embedding_worker_enabled: bool
    embedding_worker_interval_seconds: int
    embedding_batch_size: int
    embedding_rate_limit_seconds: float
    embedding_max_retries: int

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        host = os.getenv("HOST", "0.0.0.0")
        port_str = os.getenv("PORT", "8000")
        try:
            port = int(port_str)
        except ValueError:
            raise ConfigurationError(f"PORT must be an integer, got: {port_str}")

        database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tastepick.db")
        admin_token = os.getenv("ADMIN_TOKEN") or None
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # TMDB settings
        tmdb_bearer_token = os.getenv("TMDB_BEARER_TOKEN") or None
        tmdb_language = os.getenv("TMDB_LANGUAGE", "en-US")
        tmdb_region = os.getenv("TMDB_REGION", "")

        # Recommendation settings
        recs_default_limit = _int_env("RECS_DEFAULT_LIMIT", 20)
        recs_max_limit = _int_env("RECS_MAX_LIMIT", 50)
        mood_default_limit = _int_env("MOOD_DEFAULT_LIMIT", 5)
        mood_max_limit = _int_env("MOOD_MAX_LIMIT", 10)

        # OpenAI / LLM settings
        openai_api_key = os.getenv("OPENAI_API_KEY") or None
        openai_model = os.getenv("OPENAI_MODEL", "gpt-4-turbo")
        openai_embedding_model = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
        embedding_dimension = _int_env("EMBEDDING_DIMENSION", 1536)
        anthropic_api_key = os.getenv("ANTHROPIC_API_KEY") or None
        anthropic_model = os.getenv("ANTHROPIC_MODEL", "claude-haiku-4-5-20251001")
        llm_provider = os.getenv("LLM_PROVIDER", "openai").lower()
        if llm_provider not in ("openai", "anthropic"):
            raise ConfigurationError("LLM_PROVIDER must be 'openai' or 'anthropic'")
        llm_enabled = _bool_env("LLM_ENABLED", True)
        llm_timeout_seconds = _float_env("LLM_TIMEOUT_SECONDS", 20.0)

        # Embedding worker
        embedding_worker_enabled = _bool_env("EMBEDDING_WORKER_ENABLED", True)
        embedding_worker_interval_seconds = _int_env("EMBEDDING_WORKER_INTERVAL_SECONDS", 60)
        embedding_batch_size = _int_env("EMBEDDING_BATCH_SIZE", 20)
        embedding_rate_limit_seconds = _float_env("EMBEDDING_RATE_LIMIT_SECONDS", 0.2)
        embedding_max_retries = _int_env("EMBEDDING_MAX_RETRIES", 3)

        return cls(
            host=host,
            port=port,
            database_url=database_url,
            admin_token=admin_token,
            log_level=log_level,
            tmdb_bearer_token=tmdb_bearer_token,
            tmdb_language=tmdb_language,
            tmdb_region=tmdb_region,
            recs_default_limit=recs_default_limit,
            recs_max_limit=recs_max_limit,
            mood_default_limit=mood_default_limit,
            mood_max_limit=mood_max_limit,
            openai_api_key=openai_api_key,
            openai_model=openai_model,
            openai_embedding_model=openai_embedding_model,
            embedding_dimension=embedding_dimension,
            anthropic_api_key=anthropic_api_key,
            anthropic_model=anthropic_model,
            llm_provider=llm_provider,
            llm_enabled=llm_enabled,
            llm_timeout_seconds=llm_timeout_seconds,
            embedding_worker_enabled=embedding_worker_enabled,
            embedding_worker_interval_seconds=embedding_worker_interval_seconds,
            embedding_batch_size=embedding_batch_size,
            embedding_rate_limit_seconds=embedding_rate_limit_seconds,
            embedding_max_retries=embedding_max_retries,
        )


config = Config.from_env()
