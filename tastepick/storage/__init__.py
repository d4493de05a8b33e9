"""Storage module for database operations."""

from tastepick.storage.db import (
    Base,
    build_engine,
    build_session_factory,
    close_engine,
    create_tables,
    get_engine,
    get_session_factory,
)
from tastepick.storage.json_utils import (
    decode_genres,
    decode_vector,
    encode_json,
    encode_vector,
)
from tastepick.storage.models import (
    Content,
    DismissedRecommendation,
    EmbeddingJob,
    User,
    UserContent,
)
from tastepick.storage.repo_content import ContentRepo
from tastepick.storage.repo_dismissed import DismissedRepo
from tastepick.storage.repo_embedding_jobs import EmbeddingJobsRepo
from tastepick.storage.repo_interactions import InteractionsRepo, round_rating
from tastepick.storage.repo_users import UsersRepo
from tastepick.storage.vector_store import VectorStore, cosine_distance, cosine_distances

__all__ = [
    # Database
    "Base",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "close_engine",
    # JSON utilities
    "encode_json",
    "decode_genres",
    "encode_vector",
    "decode_vector",
    # Models
    "User",
    "Content",
    "UserContent",
    "DismissedRecommendation",
    "EmbeddingJob",
    # Repositories
    "UsersRepo",
    "ContentRepo",
    "InteractionsRepo",
    "DismissedRepo",
    "EmbeddingJobsRepo",
    "VectorStore",
    # Vector math
    "cosine_distance",
    "cosine_distances",
    "round_rating",
]
