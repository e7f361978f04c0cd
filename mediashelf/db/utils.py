"""Database utilities and helpers."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.exceptions import DatabaseError, MediaShelfError
from mediashelf.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions with automatic error handling.

    Usage:
        async with get_session() as session:
            items = await get_watchlist(session, user_id)

    Yields:
        AsyncSession: Database session

    Raises:
        DatabaseError: If database operation fails
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except MediaShelfError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error: {e}", exc_info=True)
            raise DatabaseError(f"Database operation failed: {e}") from e


def upsert(
    session: AsyncSession,
    model: Any,
    values: dict[str, Any],
    index_elements: Iterable[Any],
    update_fields: Iterable[str] | None = None,
):
    """
    Build an ``INSERT ... ON CONFLICT`` statement for the session's dialect.

    With ``update_fields`` the conflicting row is updated (DO UPDATE),
    otherwise the insert is skipped (DO NOTHING).
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise DatabaseError(f"Upsert is not supported on {dialect}")

    index_elements = list(index_elements)
    if update_fields is None:
        return stmt.on_conflict_do_nothing(index_elements=index_elements)
    return stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={f: values[f] for f in update_fields},
    )
