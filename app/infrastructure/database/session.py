# app/infrastructure/database/session.py

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from app.config.settings import AppSettings

Base = declarative_base()


def create_engine(settings: AppSettings) -> AsyncEngine:
    """Build the async engine once per process (at application startup)."""
    options = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    from app.infrastructure.database import models  # noqa: F401  registers HistoryEventRow on Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
