"""Tests for storage layer."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from tastepick.errors import DataIntegrityError
from tastepick.storage import (
    ContentRepo,
    DismissedRepo,
    EmbeddingJobsRepo,
    InteractionsRepo,
    UsersRepo,
    VectorStore,
    decode_genres,
    decode_vector,
    encode_vector,
    round_rating,
)
from tastepick.storage.models import EmbeddingJob, UserContent


@pytest.mark.anyio
async def test_user_create_and_get(session):
    users_repo = UsersRepo(session)

    user = await users_repo.get_or_create_user("12345")
    assert user.user_id == "12345"
    assert user.taste_embedding_json is None

    user2 = await users_repo.get_or_create_user("12345")
    assert user2.created_at == user.created_at
    assert await users_repo.exists("12345")
    assert not await users_repo.exists("other")


@pytest.mark.anyio
async def test_taste_vector_round_trip(session, user):
    users_repo = UsersRepo(session)

    await users_repo.set_taste_vector(user.user_id, [0.25, -0.5, 1.0])
    assert await users_repo.get_taste_vector(user.user_id) == (True, [0.25, -0.5, 1.0])

    await users_repo.set_taste_vector(user.user_id, None)
    assert await users_repo.get_taste_vector(user.user_id) == (True, None)

    assert await users_repo.get_taste_vector("missing") == (False, None)


def test_vector_encoding():
    assert encode_vector(None) is None
    assert decode_vector(None) is None
    assert decode_vector(encode_vector([1, 2.5])) == [1.0, 2.5]


def test_corrupt_vector_raises():
    with pytest.raises(DataIntegrityError):
        decode_vector("{not a vector")
    with pytest.raises(DataIntegrityError):
        decode_vector('{"a": 1}')


@pytest.mark.parametrize("stored", ['["x"]', '[null]', '[1.0, [1]]'])
def test_non_numeric_vector_raises(stored):
    with pytest.raises(DataIntegrityError):
        decode_vector(stored)


@pytest.mark.parametrize("stored", [None, "", "not json", '{"a": 1}'])
def test_malformed_genres_read_as_empty(stored):
    assert decode_genres(stored) == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        (7, 7.0),
        (7.2, 7.0),
        (7.3, 7.5),
        (7.75, 8.0),
        (7.25, 7.5),
        (0.25, 0.5),
        (1.25, 1.5),
        (0, 0.0),
        (10, 10.0),
        (9.9, 10.0),
    ],
)
def test_round_rating(raw, expected):
    assert round_rating(raw) == expected


@pytest.mark.parametrize("raw", [-0.5, 10.5, 11])
def test_round_rating_out_of_range(raw):
    with pytest.raises(ValueError):
        round_rating(raw)


@pytest.mark.anyio
async def test_get_or_create_content_is_idempotent(session):
    repo = ContentRepo(session)

    first, created = await repo.get_or_create_content(
        tmdb_id=550,
        content_type="movie",
        title="Fight Club",
        genres=["Drama"],
        metadata={"vote_average": 8.4},
    )
    second, created_again = await repo.get_or_create_content(
        tmdb_id=550,
        content_type="movie",
        title="Renamed",
    )

    assert created is True
    assert created_again is False
    assert second.content_id == first.content_id
    assert second.title == "Fight Club"
    assert decode_genres(second.genres_json) == ["Drama"]
    assert await repo.count_content() == 1


@pytest.mark.anyio
async def test_get_or_create_content_rejects_unknown_type(session):
    with pytest.raises(ValueError):
        await ContentRepo(session).get_or_create_content(tmdb_id=1, content_type="podcast", title="X")


@pytest.mark.anyio
async def test_count_content_embedded_only(session, add_content):
    await add_content(1, "With", embedding=[1.0, 0.0, 0.0, 0.0])
    await add_content(2, "Without")

    repo = ContentRepo(session)
    assert await repo.count_content() == 2
    assert await repo.count_content(embedded_only=True) == 1


@pytest.mark.anyio
async def test_vector_store_set_and_get(session, add_content):
    content = await add_content(1, "Item")
    store = VectorStore(session)

    assert await store.get_embedding(content.content_id) is None
    await store.set_embedding(content.content_id, [0.1, 0.2, 0.3, 0.4])
    assert await store.get_embedding(content.content_id) == [0.1, 0.2, 0.3, 0.4]


@pytest.mark.anyio
async def test_interaction_upsert_never_duplicates(session, user, add_content):
    content = await add_content(1, "Item")
    repo = InteractionsRepo(session)

    await repo.set_status(user.user_id, content.content_id, "to_watch")
    await repo.set_status(user.user_id, content.content_id, "watched")
    await repo.set_rating(user.user_id, content.content_id, 8.2)
    await repo.set_status(user.user_id, content.content_id, "favourite")

    result = await session.execute(select(func.count()).select_from(UserContent))
    assert result.scalar() == 1

    interaction = await repo.get_interaction(user.user_id, content.content_id)
    await session.refresh(interaction)
    assert interaction.status == "favourite"
    assert interaction.rating == 8.0
    assert interaction.watched_at is not None


@pytest.mark.anyio
async def test_rating_new_row_defaults_to_watched(session, user, add_content):
    content = await add_content(1, "Item")
    repo = InteractionsRepo(session)

    stored = await repo.set_rating(user.user_id, content.content_id, 6.7)

    interaction = await repo.get_interaction(user.user_id, content.content_id)
    assert stored == 6.5
    assert interaction.status == "watched"
    assert interaction.watched_at is not None
    assert await repo.list_watched_ids(user.user_id) == {content.content_id}


@pytest.mark.anyio
async def test_rating_keeps_existing_status(session, user, add_content):
    content = await add_content(1, "Item")
    repo = InteractionsRepo(session)

    await repo.set_status(user.user_id, content.content_id, "to_watch")
    await repo.set_rating(user.user_id, content.content_id, 4)

    interaction = await repo.get_interaction(user.user_id, content.content_id)
    await session.refresh(interaction)
    assert interaction.status == "to_watch"
    assert interaction.rating == 4.0


@pytest.mark.anyio
async def test_invalid_status_rejected(session, user, add_content):
    content = await add_content(1, "Item")

    with pytest.raises(ValueError):
        await InteractionsRepo(session).set_status(user.user_id, content.content_id, "loved")


@pytest.mark.anyio
async def test_remove_rating_and_interaction(session, user, add_content):
    content = await add_content(1, "Item")
    repo = InteractionsRepo(session)
    await repo.set_rating(user.user_id, content.content_id, 9)

    assert await repo.remove_rating(user.user_id, content.content_id) is True
    interaction = await repo.get_interaction(user.user_id, content.content_id)
    await session.refresh(interaction)
    assert interaction.rating is None
    assert interaction.status == "watched"

    assert await repo.remove_interaction(user.user_id, content.content_id) is True
    assert await repo.remove_interaction(user.user_id, content.content_id) is False
    assert await repo.get_interaction(user.user_id, content.content_id) is None


@pytest.mark.anyio
async def test_dismiss_is_idempotent(session, user, add_content):
    content = await add_content(1, "Item")
    repo = DismissedRepo(session)

    assert await repo.add_dismissed(user.user_id, content.content_id) is True
    assert await repo.add_dismissed(user.user_id, content.content_id) is False
    assert await repo.list_dismissed_ids(user.user_id) == {content.content_id}


@pytest.mark.anyio
async def test_new_content_enqueues_single_job(session, add_content):
    content = await add_content(1, "Item")
    jobs = EmbeddingJobsRepo(session)

    assert await jobs.count_by_status() == {"pending": 1}
    assert await jobs.enqueue(content.content_id) is None
    assert await jobs.count_by_status() == {"pending": 1}


@pytest.mark.anyio
async def test_job_lifecycle(session, add_content):
    content = await add_content(1, "Item")
    jobs = EmbeddingJobsRepo(session)

    job = await jobs.claim_next_pending()
    assert job is not None
    assert job.content_id == content.content_id
    assert job.status == "processing"
    assert await jobs.claim_next_pending() is None

    # Still active while processing
    assert await jobs.enqueue(content.content_id) is None

    await jobs.mark_completed(job.id)
    done = await jobs.get_job(job.id)
    await session.refresh(done)
    assert done.status == "completed"
    assert done.processed_at is not None

    # Completed jobs no longer block a new one
    assert await jobs.enqueue(content.content_id) is not None


@pytest.mark.anyio
async def test_failed_jobs_are_requeued_until_max_retries(session, add_content):
    content = await add_content(1, "Item")
    jobs = EmbeddingJobsRepo(session)

    job = await jobs.claim_next_pending()
    await jobs.mark_failed(job.id, "x" * 2000)
    failed = await jobs.get_job(job.id)
    await session.refresh(failed)
    assert failed.status == "failed"
    assert failed.retry_count == 1
    assert len(failed.error_message) == 1000

    assert await jobs.requeue_failed(max_retries=3) == 1
    job = await jobs.claim_next_pending()
    await jobs.mark_failed(job.id, "again")
    assert await jobs.requeue_failed(max_retries=2) == 0
    assert await jobs.count_by_status() == {"failed": 1}


@pytest.mark.anyio
async def test_requeue_skips_content_with_active_job(session, add_content):
    content = await add_content(1, "Item")
    jobs = EmbeddingJobsRepo(session)

    job = await jobs.claim_next_pending()
    await jobs.mark_failed(job.id, "boom")
    assert await jobs.enqueue(content.content_id) is not None

    assert await jobs.requeue_failed(max_retries=3) == 0
    assert await jobs.count_by_status() == {"failed": 1, "pending": 1}


@pytest.mark.anyio
async def test_reset_stuck_jobs(session, add_content):
    await add_content(1, "Item")
    jobs = EmbeddingJobsRepo(session)
    job = await jobs.claim_next_pending()

    assert await jobs.reset_stuck() == 0

    await session.execute(
        update(EmbeddingJob)
        .where(EmbeddingJob.id == job.id)
        .values(updated_at=datetime.now(timezone.utc) - timedelta(minutes=10))
    )
    await session.commit()

    assert await jobs.reset_stuck() == 1
    assert await jobs.count_by_status() == {"pending": 1}
    await session.refresh(job)
    assert job.status == "pending"
