from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from chat_hub.config import settings
from chat_hub.infrastructure.db import models  # noqa: F401  (registers tables)
from chat_hub.infrastructure.db.base import Base

engine = create_async_engine(
    settings.database_url,
    poolclass=AsyncAdaptedQueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_timeout=settings.PERSISTENCE_TIMEOUT_SECONDS,
    # asyncpg connect timeout
    connect_args={"timeout": settings.PERSISTENCE_TIMEOUT_SECONDS},
    echo=False,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def create_schema() -> None:
    """Create missing tables. Development helper; production schemas are migrated."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
