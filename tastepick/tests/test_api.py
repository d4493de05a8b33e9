"""Tests for the HTTP layer."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from tastepick.main import app, get_session
from tastepick.storage import UsersRepo
from tastepick.storage.models import User

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}


@pytest.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_health_endpoint():
    """Test that health endpoint returns ok status."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.anyio
async def test_recommendations_unknown_user_is_404(client):
    response = await client.get("/users/ghost/recommendations")

    assert response.status_code == 404


@pytest.mark.anyio
async def test_recommendations_empty_without_history(client):
    await client.put("/users/u1")

    response = await client.get("/users/u1/recommendations")

    assert response.status_code == 200
    assert response.json() == {"recommendations": []}


@pytest.mark.anyio
async def test_rating_flow_produces_recommendations(client, session, add_content):
    watched = await add_content(1, "Alien", embedding=[1.0, 0.0, 0.0, 0.0])
    similar = await add_content(2, "Aliens", embedding=[0.9, 0.1, 0.0, 0.0], release_date="1986-07-18")
    await client.put("/users/u1")

    response = await client.put(
        f"/users/u1/content/{watched.content_id}/rating",
        json={"rating": 8.7},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True, "rating": 8.5}

    found, vector = await UsersRepo(session).get_taste_vector("u1")
    assert found and vector == pytest.approx([1.0, 0.0, 0.0, 0.0])

    response = await client.get("/users/u1/recommendations", params={"limit": 5, "explain": "true"})
    assert response.status_code == 200
    recs = response.json()["recommendations"]
    assert [r["content_id"] for r in recs] == [similar.content_id]
    assert recs[0]["title"] == "Aliens"
    assert recs[0]["explanation"] == 'Based on your viewing history, we think you\'ll enjoy "Aliens".'

    response = await client.post(f"/users/u1/recommendations/{similar.content_id}/dismiss")
    assert response.json() == {"ok": True, "dismissed": True}

    response = await client.get("/users/u1/recommendations")
    assert response.json() == {"recommendations": []}


@pytest.mark.anyio
async def test_invalid_rating_is_400(client, add_content):
    content = await add_content(1, "Alien")
    await client.put("/users/u1")

    response = await client.put(f"/users/u1/content/{content.content_id}/rating", json={"rating": 11})

    assert response.status_code == 400


@pytest.mark.anyio
async def test_corrupt_taste_vector_is_500(client, session):
    await client.put("/users/u1")
    await session.execute(
        update(User).where(User.user_id == "u1").values(taste_embedding_json='["oops", 1.0]')
    )
    await session.commit()

    response = await client.get("/users/u1/recommendations")

    assert response.status_code == 500


@pytest.mark.anyio
async def test_status_and_delete_interaction(client, add_content):
    content = await add_content(1, "Alien", embedding=[1.0, 0.0, 0.0, 0.0])
    await client.put("/users/u1")

    response = await client.put(f"/users/u1/content/{content.content_id}/status", json={"status": "watched"})
    assert response.json() == {"ok": True, "status": "watched", "has_taste_profile": True}

    response = await client.delete(f"/users/u1/content/{content.content_id}/rating")
    assert response.json() == {"ok": True, "removed": True}

    response = await client.delete(f"/users/u1/content/{content.content_id}")
    assert response.json() == {"ok": True, "removed": True}


@pytest.mark.anyio
async def test_interaction_with_unknown_content_is_404(client):
    await client.put("/users/u1")

    response = await client.put("/users/u1/content/missing/status", json={"status": "watched"})

    assert response.status_code == 404


@pytest.mark.anyio
async def test_mood_requires_text(client):
    await client.put("/users/u1")

    response = await client.post("/users/u1/recommendations/mood", json={"mood": "   "})

    assert response.status_code == 400


@pytest.mark.anyio
async def test_mood_recommendations(client):
    from tastepick.core.contracts import RecommendationCandidate

    await client.put("/users/u1")
    candidate = RecommendationCandidate(
        content_id="c1", tmdb_id=1, type="movie", title="Amelie", similarity=0.0, distance=1.0
    )

    with patch("tastepick.core.mood_to_candidates", AsyncMock(return_value=[candidate])) as mood:
        response = await client.post("/users/u1/recommendations/mood", json={"mood": "whimsical", "limit": 50})

    assert response.status_code == 200
    assert mood.await_args.kwargs["limit"] == 5
    recs = response.json()["recommendations"]
    assert recs[0]["explanation"] == 'This matches your mood "whimsical": we think you\'ll enjoy "Amelie".'


@pytest.mark.anyio
async def test_admin_requires_token(client):
    response = await client.get("/admin/stats")
    assert response.status_code == 401

    response = await client.get("/admin/stats", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 403


@pytest.mark.anyio
async def test_admin_add_content_and_stats(client):
    response = await client.post(
        "/admin/content",
        json={"tmdb_id": 78, "type": "movie", "title": "Blade Runner", "genres": ["Science Fiction"]},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["created"] is True

    response = await client.get("/admin/stats", headers=ADMIN_HEADERS)
    assert response.json() == {
        "content": {"total": 1, "embedded": 0},
        "users": {"total": 0},
        "embedding_jobs": {"pending": 1},
        "embedding_worker": {"scheduled": False, "next_run_at": None},
    }
