"""SQLAlchemy ORM models for TastePick."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tastepick.storage.db import Base


class User(Base):
    """User record holding the current taste vector."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    # JSON array of floats; NULL until the user has watched embedded content
    taste_embedding_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    interactions: Mapped[list["UserContent"]] = relationship(
        "UserContent", back_populates="user", cascade="all, delete-orphan"
    )
    dismissed: Mapped[list["DismissedRecommendation"]] = relationship(
        "DismissedRecommendation", back_populates="user", cascade="all, delete-orphan"
    )


class Content(Base):
    """Catalogue content (movies, TV shows, documentaries)."""

    __tablename__ = "content"

    content_id: Mapped[str] = mapped_column(String, primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    overview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(String, nullable=True)  # YYYY-MM-DD
    poster_path: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    genres_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    embedding_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("type IN ('movie', 'tv', 'documentary')", name="ck_content_type"),
    )


class UserContent(Base):
    """One row per (user, content) pair: status, rating, watch time."""

    __tablename__ = "user_content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    content_id: Mapped[str] = mapped_column(
        String, ForeignKey("content.content_id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, nullable=False)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    watched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="interactions")
    content: Mapped["Content"] = relationship("Content")

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_user_content_user_content"),
        CheckConstraint(
            "status IN ('watched', 'to_watch', 'favourite')",
            name="ck_user_content_status",
        ),
        CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 10)",
            name="ck_user_content_rating",
        ),
        Index("ix_user_content_user_status", "user_id", "status"),
        Index("ix_user_content_watched_at", "watched_at"),
    )


class DismissedRecommendation(Base):
    """Content the user dismissed; permanently excluded from their candidates."""

    __tablename__ = "dismissed_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    content_id: Mapped[str] = mapped_column(
        String, ForeignKey("content.content_id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="dismissed")
    content: Mapped["Content"] = relationship("Content")

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_dismissed_user_content"),
    )


class EmbeddingJob(Base):
    """Queued request to compute a content embedding."""

    __tablename__ = "embedding_jobs"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    content_id: Mapped[str] = mapped_column(
        String, ForeignKey("content.content_id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    content: Mapped["Content"] = relationship("Content")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_embedding_jobs_status",
        ),
        Index("ix_embedding_jobs_status_created", "status", "created_at"),
        Index("ix_embedding_jobs_content_id", "content_id"),
        Index(
            "uq_embedding_jobs_active_content",
            "content_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'processing')"),
            postgresql_where=text("status IN ('pending', 'processing')"),
        ),
    )
