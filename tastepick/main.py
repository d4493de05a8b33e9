"""Application entrypoint for the recommendation API."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Literal

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tastepick.config import config
from tastepick.errors import DataIntegrityError, NotFoundError
from tastepick.jobs import setup_all_jobs, shutdown_scheduler, start_scheduler
from tastepick.logging import get_logger, setup_logging

setup_logging(config.log_level)
logger = get_logger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for one request."""
    from tastepick.storage import get_session_factory

    session_factory = get_session_factory()
    async with session_factory() as session:
        yield session


async def verify_admin_token(
    authorization: str | None = Header(None, alias="Authorization"),
) -> None:
    """Verify admin token for protected endpoints.

    Args:
        authorization: Authorization header value

    Raises:
        HTTPException: If token is invalid or missing
    """
    if not config.admin_token:
        raise HTTPException(
            status_code=503,
            detail="Admin endpoints not configured (ADMIN_TOKEN not set)",
        )

    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    # Support "Bearer <token>" or just "<token>"
    token = authorization
    if authorization.startswith("Bearer "):
        token = authorization[7:]

    if token != config.admin_token:
        raise HTTPException(status_code=403, detail="Invalid admin token")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    from tastepick.providers import close_tmdb_client
    from tastepick.storage import close_engine, create_tables

    logger.info("Starting application")

    await create_tables()
    logger.info("Database tables ensured")

    start_scheduler()
    setup_all_jobs()

    yield

    logger.info("Shutting down application")
    shutdown_scheduler()
    await close_tmdb_client()
    await close_engine()


app = FastAPI(
    title="TastePick",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)[:200]})


@app.exception_handler(DataIntegrityError)
async def integrity_handler(request: Request, exc: DataIntegrityError) -> JSONResponse:
    logger.error(f"Data integrity error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Stored embeddings are inconsistent"})


class MoodRequest(BaseModel):
    mood: str
    limit: int | None = None


class StatusRequest(BaseModel):
    status: Literal["watched", "to_watch", "favourite"]


class RatingRequest(BaseModel):
    rating: float


class ContentPayload(BaseModel):
    tmdb_id: int
    type: Literal["movie", "tv", "documentary"]
    title: str
    overview: str | None = None
    release_date: str | None = None
    poster_path: str | None = None
    genres: list[str] = []


def _clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Out-of-range limits fall back to the default."""
    if limit is None or limit <= 0 or limit > maximum:
        return default
    return limit


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"ok": True}


@app.put("/users/{user_id}")
async def ensure_user(user_id: str, session: AsyncSession = Depends(get_session)) -> dict:
    """Create the user if it does not exist yet."""
    from tastepick.storage import UsersRepo

    user = await UsersRepo(session).get_or_create_user(user_id)
    return {"ok": True, "user_id": user.user_id}


@app.get("/users/{user_id}/recommendations")
async def get_recommendations(
    user_id: str,
    limit: int | None = Query(None),
    explain: bool = Query(False),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Personalised recommendations, optionally with explanations."""
    from tastepick.core import explain_candidates, retrieve_candidates

    limit = _clamp_limit(limit, config.recs_default_limit, config.recs_max_limit)
    candidates = await retrieve_candidates(session, user_id, limit=limit)
    if explain:
        candidates = await explain_candidates(session, user_id, candidates)

    return {"recommendations": [c.to_dict() for c in candidates]}


@app.post("/users/{user_id}/recommendations/mood")
async def get_mood_recommendations(
    user_id: str,
    payload: MoodRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Recommendations for a free-text mood, each with an explanation."""
    from tastepick.core import explain_candidates, mood_to_candidates
    from tastepick.providers import TMDBError

    mood = payload.mood.strip()
    if not mood:
        raise HTTPException(status_code=400, detail="Mood request is required")

    limit = _clamp_limit(payload.limit, config.mood_default_limit, config.mood_max_limit)

    try:
        candidates = await mood_to_candidates(session, user_id, mood, limit=limit)
    except TMDBError as e:
        logger.exception(f"Mood recommendations failed for user={user_id}: {e}")
        raise HTTPException(
            status_code=503,
            detail=f"Content search unavailable: {str(e)[:200]}",
        )

    candidates = await explain_candidates(session, user_id, candidates, mood=mood)
    return {"recommendations": [c.to_dict() for c in candidates]}


@app.post("/users/{user_id}/recommendations/{content_id}/dismiss")
async def dismiss(
    user_id: str,
    content_id: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Hide a recommendation from the user's future results."""
    from tastepick.core import dismiss_recommendation

    added = await dismiss_recommendation(session, user_id, content_id)
    return {"ok": True, "dismissed": added}


@app.put("/users/{user_id}/content/{content_id}/status")
async def set_status(
    user_id: str,
    content_id: str,
    payload: StatusRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Set watched / to-watch / favourite status."""
    from tastepick.core import record_interaction

    vector = await record_interaction(session, user_id, content_id, payload.status)
    return {"ok": True, "status": payload.status, "has_taste_profile": vector is not None}


@app.delete("/users/{user_id}/content/{content_id}")
async def delete_interaction(
    user_id: str,
    content_id: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Remove the user's interaction with a content item."""
    from tastepick.core import remove_interaction

    removed = await remove_interaction(session, user_id, content_id)
    return {"ok": True, "removed": removed}


@app.put("/users/{user_id}/content/{content_id}/rating")
async def set_rating(
    user_id: str,
    content_id: str,
    payload: RatingRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Rate a content item on a 0-10 scale (half points)."""
    from tastepick.core import record_rating

    stored = await record_rating(session, user_id, content_id, payload.rating)
    return {"ok": True, "rating": stored}


@app.delete("/users/{user_id}/content/{content_id}/rating")
async def delete_rating(
    user_id: str,
    content_id: str,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Clear a rating, keeping the interaction."""
    from tastepick.core import clear_rating

    removed = await clear_rating(session, user_id, content_id)
    return {"ok": True, "removed": removed}


@app.post("/admin/content")
async def add_content(
    payload: ContentPayload,
    _: None = Depends(verify_admin_token),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Add a catalogue item directly; its embedding is queued.

    Requires admin token in Authorization header.
    """
    from tastepick.storage import ContentRepo

    content, created = await ContentRepo(session).get_or_create_content(
        tmdb_id=payload.tmdb_id,
        content_type=payload.type,
        title=payload.title,
        overview=payload.overview,
        release_date=payload.release_date,
        poster_path=payload.poster_path,
        genres=payload.genres,
    )
    return {"ok": True, "content_id": content.content_id, "created": created}


@app.post("/admin/content/tmdb/{media_type}/{tmdb_id}")
async def import_tmdb_content(
    media_type: Literal["movie", "tv"],
    tmdb_id: int,
    _: None = Depends(verify_admin_token),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Import a title from TMDB into the catalogue.

    Requires admin token in Authorization header.
    """
    from tastepick.providers import TMDBError, content_fields_from_tmdb, get_tmdb_client
    from tastepick.storage import ContentRepo

    try:
        client = get_tmdb_client()
        if media_type == "movie":
            details = await client.get_movie_details(tmdb_id)
        else:
            details = await client.get_tv_details(tmdb_id)
    except TMDBError as e:
        logger.exception(f"TMDB import failed for {media_type}/{tmdb_id}: {e}")
        raise HTTPException(
            status_code=404 if e.status_code == 404 else 502,
            detail=f"TMDB lookup failed: {str(e)[:200]}",
        )

    fields = content_fields_from_tmdb(details, media_type)
    content, created = await ContentRepo(session).get_or_create_content(**fields)
    return {"ok": True, "content_id": content.content_id, "created": created}


@app.post("/admin/embeddings/run")
async def trigger_embedding_worker(
    batch_size: int | None = Query(None),
    _: None = Depends(verify_admin_token),
) -> dict:
    """Run the embedding worker once.

    Requires admin token in Authorization header.

    Returns:
        Worker statistics
    """
    from tastepick.jobs import run_embedding_worker

    logger.info("Admin triggered embedding worker")

    try:
        stats = await run_embedding_worker(batch_size=batch_size)
        return {"ok": True, **stats.to_dict()}
    except Exception as e:
        logger.exception(f"Admin embedding run failed: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Embedding run failed: {str(e)[:200]}",
        )


@app.get("/admin/stats")
async def get_stats(
    _: None = Depends(verify_admin_token),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Catalogue and embedding queue statistics.

    Requires admin token in Authorization header.
    """
    from sqlalchemy import func, select

    from tastepick.jobs import embedding_worker_schedule
    from tastepick.storage import ContentRepo, EmbeddingJobsRepo
    from tastepick.storage.models import User

    content_repo = ContentRepo(session)
    total_users = (await session.execute(select(func.count()).select_from(User))).scalar() or 0

    return {
        "content": {
            "total": await content_repo.count_content(),
            "embedded": await content_repo.count_content(embedded_only=True),
        },
        "users": {"total": total_users},
        "embedding_jobs": await EmbeddingJobsRepo(session).count_by_status(),
        "embedding_worker": embedding_worker_schedule(),
    }


def main() -> None:
    """Run the API server."""
    logger.info(f"Starting FastAPI server on {config.host}:{config.port}")
    uvicorn.run(
        "tastepick.main:app",
        host=config.host,
        port=config.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
