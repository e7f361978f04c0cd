"""
Shared cache of detailed movie/TV metadata.

Cache reads and writes are best-effort: a database failure is logged and
treated as a cache miss so the caller falls back to the live API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import MEDIA_DETAILS_TTL_DAYS
from mediashelf.db.base import as_utc, utcnow
from mediashelf.db.models import MediaDetailsCache
from mediashelf.db.utils import upsert

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=MEDIA_DETAILS_TTL_DAYS)


def is_cache_fresh(fetched_at: datetime, expires_at: datetime | None, now: datetime | None = None) -> bool:
    """A row is fresh until ``expires_at``, or ``fetched_at`` + default TTL when no expiry is stored."""
    now = now or utcnow()
    if expires_at is not None:
        return as_utc(expires_at) > now
    return as_utc(fetched_at) + DEFAULT_TTL > now


async def get_cached(session: AsyncSession, external_id: str, media_type: str) -> dict[str, Any] | None:
    # upsert_cached writes through Core, so never trust the identity map here
    try:
        stmt = select(MediaDetailsCache).where(
            MediaDetailsCache.external_id == external_id,
            MediaDetailsCache.media_type == media_type,
        ).execution_options(populate_existing=True)
        row = (await session.execute(stmt)).scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.warning("Failed to read media details cache row %s:%s: %s", external_id, media_type, e)
        await session.rollback()
        return None

    if row is None or not row.data or not is_cache_fresh(row.fetched_at, row.expires_at):
        return None
    return row.data


async def get_cached_batch(
    session: AsyncSession,
    items: Iterable[tuple[str, str]],
) -> dict[tuple[str, str], dict[str, Any]]:
    """Fresh cached details for several (external_id, media_type) pairs; stale or missing pairs are left out."""
    items = list(items)
    results: dict[tuple[str, str], dict[str, Any]] = {}
    if not items:
        return results

    stmt = select(MediaDetailsCache).where(
        or_(*(and_(MediaDetailsCache.external_id == eid, MediaDetailsCache.media_type == mt) for eid, mt in items))
    ).execution_options(populate_existing=True)
    try:
        rows = (await session.execute(stmt)).scalars().all()
    except SQLAlchemyError as e:
        logger.warning("Failed to read media details cache: %s", e)
        await session.rollback()
        return results

    now = utcnow()
    for row in rows:
        if row.data and is_cache_fresh(row.fetched_at, row.expires_at, now):
            results[(row.external_id, row.media_type)] = row.data
    return results


async def upsert_cached(
    session: AsyncSession,
    external_id: str,
    media_type: str,
    data: dict[str, Any],
    ttl: timedelta = DEFAULT_TTL,
) -> bool:
    """Store details for a title. Returns False (and logs) when the write fails."""
    now = utcnow()
    values = {
        "external_id": external_id,
        "media_type": media_type,
        "data": data,
        "fetched_at": now,
        "expires_at": now + ttl,
        "updated_at": now,
    }
    try:
        await session.execute(
            upsert(
                session,
                MediaDetailsCache,
                values,
                index_elements=["external_id", "media_type"],
                update_fields=["data", "fetched_at", "expires_at", "updated_at"],
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        logger.warning("Failed to upsert media details cache %s:%s: %s", external_id, media_type, e)
        await session.rollback()
        return False
    return True


async def list_cached_keys(session: AsyncSession, external_ids: Iterable[str] | None = None) -> set[tuple[str, str]]:
    stmt = select(MediaDetailsCache.external_id, MediaDetailsCache.media_type)
    if external_ids is not None:
        stmt = stmt.where(MediaDetailsCache.external_id.in_(list(external_ids)))
    rows = (await session.execute(stmt)).all()
    return {(r[0], r[1]) for r in rows}
