"""External content metadata providers."""

from tastepick.providers.tmdb_client import (
    TMDBClient,
    TMDBContentSearch,
    TMDBError,
    TMDBRateLimitError,
    close_tmdb_client,
    content_fields_from_tmdb,
    genre_ids_to_names,
    get_tmdb_client,
)

__all__ = [
    "TMDBClient",
    "TMDBContentSearch",
    "TMDBError",
    "TMDBRateLimitError",
    "close_tmdb_client",
    "content_fields_from_tmdb",
    "genre_ids_to_names",
    "get_tmdb_client",
]
