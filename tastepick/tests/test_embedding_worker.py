"""Tests for content embedding and the embedding worker."""

import dataclasses
from unittest.mock import AsyncMock

import pytest

from tastepick.core.embeddings import build_content_text, embed_content
from tastepick.errors import ExternalServiceError, NotFoundError
from tastepick.jobs import scheduler
from tastepick.jobs.embedding_worker import run_embedding_worker
from tastepick.jobs.scheduler import (
    EMBEDDING_WORKER_JOB_ID,
    embedding_worker_schedule,
    get_scheduler,
    setup_embedding_worker_job,
    shutdown_scheduler,
)
from tastepick.llm import LLMError
from tastepick.storage import EmbeddingJobsRepo, VectorStore


def test_build_content_text():
    text = build_content_text("Arrival", "Linguist meets aliens.", ["Drama", "Science Fiction"])

    assert text == (
        "Title: Arrival\n\n"
        "Synopsis: Linguist meets aliens.\n\n"
        "Genres: Drama, Science Fiction"
    )


def test_build_content_text_skips_missing_parts():
    assert build_content_text("Arrival", None, []) == "Title: Arrival"


@pytest.mark.anyio
async def test_embed_content_stores_vector(session, add_content):
    content = await add_content(1, "Arrival", overview="Linguist meets aliens.", genres=["Drama"])
    embedder = AsyncMock()
    embedder.embed.return_value = [0.1, 0.2, 0.3, 0.4]

    vector = await embed_content(session, content.content_id, embedder=embedder)

    assert vector == [0.1, 0.2, 0.3, 0.4]
    assert await VectorStore(session).get_embedding(content.content_id) == vector
    embedder.embed.assert_awaited_once_with(
        "Title: Arrival\n\nSynopsis: Linguist meets aliens.\n\nGenres: Drama"
    )


@pytest.mark.anyio
async def test_embed_content_rejects_wrong_dimension(session, add_content):
    content = await add_content(1, "Arrival")
    embedder = AsyncMock()
    embedder.embed.return_value = [0.1, 0.2]

    with pytest.raises(ExternalServiceError):
        await embed_content(session, content.content_id, embedder=embedder)

    assert await VectorStore(session).get_embedding(content.content_id) is None


@pytest.mark.anyio
async def test_embed_content_unknown(session):
    with pytest.raises(NotFoundError):
        await embed_content(session, "nope", embedder=AsyncMock())


@pytest.mark.anyio
async def test_worker_processes_pending_jobs(session, session_factory, add_content):
    first = await add_content(1, "One")
    second = await add_content(2, "Two")
    embedder = AsyncMock()
    embedder.embed.return_value = [1.0, 0.0, 0.0, 0.0]

    stats = await run_embedding_worker(batch_size=10, embedder=embedder, delay_seconds=0, session_factory=session_factory)

    assert stats.processed == 2
    assert stats.succeeded == 2
    assert stats.failed == 0
    assert stats.finished_at is not None
    store = VectorStore(session)
    assert await store.get_embedding(first.content_id) == [1.0, 0.0, 0.0, 0.0]
    assert await store.get_embedding(second.content_id) == [1.0, 0.0, 0.0, 0.0]
    assert await EmbeddingJobsRepo(session).count_by_status() == {"completed": 2}


@pytest.mark.anyio
async def test_worker_respects_batch_size(session, session_factory, add_content):
    for i in range(3):
        await add_content(i + 1, f"Item {i}")
    embedder = AsyncMock()
    embedder.embed.return_value = [0.0, 1.0, 0.0, 0.0]

    stats = await run_embedding_worker(batch_size=2, embedder=embedder, delay_seconds=0, session_factory=session_factory)

    assert stats.processed == 2
    assert await EmbeddingJobsRepo(session).count_by_status() == {"completed": 2, "pending": 1}


@pytest.mark.anyio
async def test_worker_records_failures_and_retries(session, session_factory, add_content):
    content = await add_content(1, "Flaky")
    embedder = AsyncMock()
    embedder.embed.side_effect = LLMError("OpenAI server error: 500", status_code=500)

    stats = await run_embedding_worker(batch_size=5, embedder=embedder, delay_seconds=0, session_factory=session_factory)

    assert stats.failed == 1
    assert stats.succeeded == 0
    assert await EmbeddingJobsRepo(session).count_by_status() == {"failed": 1}

    embedder.embed.side_effect = None
    embedder.embed.return_value = [0.5, 0.5, 0.0, 0.0]
    stats = await run_embedding_worker(batch_size=5, embedder=embedder, delay_seconds=0, session_factory=session_factory)

    assert stats.requeued == 1
    assert stats.succeeded == 1
    assert await VectorStore(session).get_embedding(content.content_id) == [0.5, 0.5, 0.0, 0.0]


@pytest.mark.anyio
async def test_worker_with_empty_queue(session_factory):
    stats = await run_embedding_worker(batch_size=5, embedder=AsyncMock(), delay_seconds=0, session_factory=session_factory)

    assert stats.processed == 0
    assert stats.to_dict()["processed"] == 0


def test_worker_job_not_scheduled_when_disabled():
    try:
        assert setup_embedding_worker_job() is None
        assert get_scheduler().get_job(EMBEDDING_WORKER_JOB_ID) is None
        assert embedding_worker_schedule() == {"scheduled": False, "next_run_at": None}
    finally:
        shutdown_scheduler()


def test_worker_job_scheduled_when_enabled(monkeypatch):
    enabled = dataclasses.replace(scheduler.config, embedding_worker_enabled=True, openai_api_key="sk-test")
    monkeypatch.setattr(scheduler, "config", enabled)

    try:
        assert setup_embedding_worker_job() == EMBEDDING_WORKER_JOB_ID
        status = embedding_worker_schedule()
        assert status["scheduled"] is True
        assert status["next_run_at"] is not None
    finally:
        shutdown_scheduler()
