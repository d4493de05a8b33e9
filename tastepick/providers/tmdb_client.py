"""TMDB API client with retry logic."""

import asyncio
from typing import Any, Literal

import httpx

from tastepick.config import config
from tastepick.errors import ExternalServiceError
from tastepick.logging import get_logger

logger = get_logger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
BASE_BACKOFF = 1.0
DOCUMENTARY_GENRE_ID = 99

TMDB_GENRE_MAP: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
    # TV-specific
    10759: "Action & Adventure",
    10762: "Kids",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
}


def genre_ids_to_names(genre_ids: list[int]) -> list[str]:
    """Convert TMDB genre IDs to names, skipping unknown IDs."""
    return [TMDB_GENRE_MAP[gid] for gid in genre_ids if gid in TMDB_GENRE_MAP]


def content_fields_from_tmdb(
    item: dict[str, Any],
    media_type: Literal["movie", "tv"],
) -> dict[str, Any]:
    """Map a TMDB search hit or details payload to catalogue fields.

    Search hits carry ``genre_ids``; details payloads carry ``genres``
    objects. Movies tagged Documentary are stored as documentaries.

    Args:
        item: TMDB result dict
        media_type: "movie" or "tv"

    Returns:
        Keyword arguments for ``ContentRepo.get_or_create_content``
    """
    if item.get("genres"):
        genre_ids = [g.get("id") for g in item["genres"] if g.get("id") is not None]
        genres = [g.get("name") for g in item["genres"] if g.get("name")]
    else:
        genre_ids = list(item.get("genre_ids") or [])
        genres = genre_ids_to_names(genre_ids)

    if media_type == "movie":
        title = item.get("title") or item.get("original_title") or ""
        release_date = item.get("release_date")
        content_type = "documentary" if DOCUMENTARY_GENRE_ID in genre_ids else "movie"
    else:
        title = item.get("name") or item.get("original_name") or ""
        release_date = item.get("first_air_date")
        content_type = "tv"

    metadata = {
        key: item[key]
        for key in ("vote_average", "vote_count", "popularity", "original_language")
        if item.get(key) is not None
    }

    return {
        "tmdb_id": int(item["id"]),
        "content_type": content_type,
        "title": title,
        "overview": item.get("overview") or None,
        "release_date": release_date or None,
        "poster_path": item.get("poster_path"),
        "genres": genres,
        "metadata": metadata,
    }


class TMDBError(ExternalServiceError):
    """Base exception for TMDB API errors."""


class TMDBRateLimitError(TMDBError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int | None = None):
        super().__init__("Rate limit exceeded", status_code=429)
        self.retry_after = retry_after


class TMDBClient:
    """Async TMDB API client with retry logic."""

    def __init__(
        self,
        bearer_token: str,
        language: str = "en-US",
        region: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize TMDB client.

        Args:
            bearer_token: TMDB API bearer token (v4 auth)
            language: Language for results (e.g., "en-US")
            region: Region for results (e.g., "US")
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.bearer_token = bearer_token
        self.language = language
        self.region = region
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=TMDB_BASE_URL,
                headers={
                    "Authorization": f"Bearer {self.bearer_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            path: API path (e.g., "/search/movie")
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            TMDBError: On API error after retries exhausted
        """
        client = await self._get_client()

        if params is None:
            params = {}
        params.setdefault("language", self.language)
        if self.region:
            params.setdefault("region", self.region)

        last_error: Exception | None = None

        for attempt in range(MAX_RETRIES):
            try:
                response = await client.request(method, path, params=params)

                if response.status_code == 200:
                    return response.json()

                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    wait_time = int(retry_after) if retry_after else (BASE_BACKOFF * (2 ** attempt))
                    logger.warning(
                        f"TMDB rate limited, retry after {wait_time}s "
                        f"(attempt {attempt + 1}/{MAX_RETRIES})"
                    )
                    if attempt < MAX_RETRIES - 1:
                        await asyncio.sleep(wait_time)
                        continue
                    raise TMDBRateLimitError(retry_after=int(retry_after) if retry_after else None)

                if response.status_code >= 500:
                    wait_time = BASE_BACKOFF * (2 ** attempt)
                    logger.warning(
                        f"TMDB server error {response.status_code}, "
                        f"retry in {wait_time}s (attempt {attempt + 1}/{MAX_RETRIES})"
                    )
                    if attempt < MAX_RETRIES - 1:
                        await asyncio.sleep(wait_time)
                        continue
                    raise TMDBError(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )

                error_data = response.json() if response.content else {}
                error_msg = error_data.get("status_message", f"HTTP {response.status_code}")
                raise TMDBError(error_msg, status_code=response.status_code)

            except httpx.TimeoutException as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"TMDB timeout, retry in {wait_time}s "
                    f"(attempt {attempt + 1}/{MAX_RETRIES})"
                )
                last_error = e
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(wait_time)
                    continue

            except httpx.RequestError as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"TMDB request error: {e}, retry in {wait_time}s "
                    f"(attempt {attempt + 1}/{MAX_RETRIES})"
                )
                last_error = e
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(wait_time)
                    continue

        raise TMDBError(f"Max retries exceeded: {last_error}")

    async def search(
        self,
        media_type: Literal["movie", "tv"],
        query: str,
        page: int = 1,
    ) -> dict[str, Any]:
        """Search movies or TV shows by free text.

        Args:
            media_type: "movie" or "tv"
            query: Search text
            page: Page number (1-based)

        Returns:
            TMDB response with results array
        """
        return await self._request(
            "GET",
            f"/search/{media_type}",
            params={"query": query, "page": page, "include_adult": "false"},
        )

    async def get_movie_details(self, movie_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/movie/{movie_id}")

    async def get_tv_details(self, tv_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/tv/{tv_id}")


class TMDBContentSearch:
    """Content search backed by TMDB search endpoints."""

    def __init__(self, client: TMDBClient) -> None:
        self.client = client

    async def search(
        self,
        query: str,
        media_type: Literal["movie", "tv"],
    ) -> list[dict[str, Any]]:
        """Return raw TMDB hits for a query, best match first."""
        data = await self.client.search(media_type, query)
        return list(data.get("results") or [])


_default_client: TMDBClient | None = None


def get_tmdb_client() -> TMDBClient:
    """Get the shared TMDB client configured from the environment.

    Raises:
        TMDBError: If TMDB_BEARER_TOKEN is not configured
    """
    global _default_client
    if not config.tmdb_bearer_token:
        raise TMDBError("TMDB_BEARER_TOKEN is not configured")
    if _default_client is None:
        _default_client = TMDBClient(
            bearer_token=config.tmdb_bearer_token,
            language=config.tmdb_language,
            region=config.tmdb_region,
        )
    return _default_client


async def close_tmdb_client() -> None:
    """Close the shared TMDB client if one was created."""
    global _default_client
    if _default_client is not None:
        await _default_client.close()
        _default_client = None
