from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mediashelf.core.config import settings


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for Postgres; SQLite (local runs) takes none of them."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 10,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


async_engine = create_async_engine(settings.database_url_async, **engine_options(settings.database_url_async))

# autoflush off: repositories flush through commit
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    async with AsyncSessionLocal() as session:
        yield session
