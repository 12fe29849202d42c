"""Async database engine and session factory for the report store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.ECHO_SQL)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency that yields an async session."""
    async with async_session_factory() as session:
        yield session


async def create_tables() -> None:
    from .models.base import Base
    from .models import report  # noqa: F401  registers the table

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
