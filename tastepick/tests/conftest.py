"""Pytest configuration and shared fixtures."""

import os

# Set test environment variables before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_tastepick.db"
os.environ["LOG_LEVEL"] = "INFO"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["TMDB_BEARER_TOKEN"] = ""
os.environ["LLM_PROVIDER"] = "openai"
os.environ["LLM_ENABLED"] = "false"
os.environ["EMBEDDING_WORKER_ENABLED"] = "false"
os.environ["EMBEDDING_DIMENSION"] = "4"
os.environ["EMBEDDING_RATE_LIMIT_SECONDS"] = "0"

import pytest

from tastepick.storage import (
    Base,
    ContentRepo,
    UsersRepo,
    VectorStore,
    build_engine,
    build_session_factory,
    create_tables,
)


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    """Create test database engine on a throwaway SQLite file."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test_tastepick.db'}")
    await create_tables(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_content(session):
    """Insert a catalogue item, optionally with its embedding already stored."""

    async def _add(
        tmdb_id: int,
        title: str,
        content_type: str = "movie",
        embedding: list[float] | None = None,
        **fields,
    ):
        content, _ = await ContentRepo(session).get_or_create_content(
            tmdb_id=tmdb_id,
            content_type=content_type,
            title=title,
            **fields,
        )
        if embedding is not None:
            await VectorStore(session).set_embedding(content.content_id, embedding)
        return content

    return _add


@pytest.fixture
async def user(session):
    """A user with no history."""
    return await UsersRepo(session).get_or_create_user("user-1")
