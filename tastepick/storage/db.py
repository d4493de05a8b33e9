"""Async engine and session management."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tastepick.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """Declarative base for the catalogue, interaction and queue tables."""


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    """Get the application engine, creating it from config on first use."""
    global _engine

    if _engine is None:
        from tastepick.config import config

        logger.info(f"Creating database engine for {config.database_url}")
        _engine = build_engine(config.database_url, echo=config.log_level == "DEBUG")

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())

    return _session_factory


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables; existing ones are left alone."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine() -> None:
    """Dispose the application engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is None:
        return

    logger.info("Closing database engine")
    await _engine.dispose()
    _engine = None
    _session_factory = None
