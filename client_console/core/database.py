"""Database engine and session factory."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from client_console.core.config import settings


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    Server databases get the configured connection pool; SQLite files (local
    runs and tests) open a connection per session instead.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, poolclass=NullPool)

    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before using them
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by ClientService; loaded rows stay readable after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(settings.DATABASE_URL)
async_session_maker = make_session_factory(engine)


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session (context manager style).

    Usage:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
    """
    async with async_session_maker() as session:
        yield session
