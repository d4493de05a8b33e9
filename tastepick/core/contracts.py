"""Domain contracts and type definitions."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Literal, Protocol, TypedDict


class ContentType(str, Enum):
    """Types of catalogue content."""

    MOVIE = "movie"
    TV = "tv"
    DOCUMENTARY = "documentary"


class InteractionStatus(str, Enum):
    """Per-user status of a content item."""

    WATCHED = "watched"
    TO_WATCH = "to_watch"
    FAVOURITE = "favourite"


class ChatMessage(TypedDict):
    """Single chat-completion message."""

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class RecommendationCandidate:
    """Catalogue item scored against a taste vector.

    Built fresh per request and never persisted. ``similarity`` is always
    ``1 - distance``.
    """

    content_id: str
    tmdb_id: int
    type: str
    title: str
    similarity: float
    distance: float
    overview: str | None = None
    release_date: str | None = None
    poster_path: str | None = None
    explanation: str | None = None

    @classmethod
    def from_content(cls, content: Any, distance: float) -> "RecommendationCandidate":
        """Build a candidate from a Content row and its cosine distance."""
        return cls(
            content_id=content.content_id,
            tmdb_id=content.tmdb_id,
            type=content.type,
            title=content.title,
            similarity=1 - distance,
            distance=distance,
            overview=content.overview,
            release_date=content.release_date,
            poster_path=content.poster_path,
        )

    @property
    def year(self) -> int | None:
        return release_year(self.release_date)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class WatchedItem:
    """Entry of a user's watch history used in explanation prompts."""

    title: str
    type: str
    rating: float | None
    release_date: str | None

    @property
    def year(self) -> int | None:
        return release_year(self.release_date)


def release_year(release_date: str | None) -> int | None:
    """Extract the year from a YYYY-MM-DD (or YYYY) date string."""
    if not release_date or len(release_date) < 4:
        return None
    try:
        return int(release_date[:4])
    except ValueError:
        return None


class ChatModel(Protocol):
    """Chat-completion capability."""

    async def chat_complete(self, messages: list[ChatMessage]) -> str:
        ...


class Embedder(Protocol):
    """Text-embedding capability."""

    async def embed(self, text: str) -> list[float]:
        ...


class ContentSearch(Protocol):
    """External content search (movies and TV separately)."""

    async def search(
        self,
        query: str,
        media_type: Literal["movie", "tv"],
    ) -> list[dict[str, Any]]:
        ...
