"""
Persisted attempt counters behind the sign in / sign up / invite check limits.

One row per key. The row is locked while it is read and updated, so workers
sharing the database see the same count.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import ATTEMPT_RECORD_MAX_AGE_SECONDS
from mediashelf.db.base import as_utc, utcnow
from mediashelf.db.models import RateLimit
from mediashelf.db.utils import upsert

logger = logging.getLogger(__name__)


def _retry_after(until: datetime, now: datetime) -> int:
    return max(1, math.ceil((until - now).total_seconds()))


async def _locked_row(session: AsyncSession, key: str) -> RateLimit | None:
    stmt = (
        select(RateLimit)
        .where(RateLimit.key == key)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def check_rate_limit(
    session: AsyncSession,
    key: str,
    max_attempts: int,
    window_seconds: float,
    block_seconds: float,
    now: datetime | None = None,
) -> tuple[bool, int]:
    """
    Count one attempt for ``key``.

    Returns (allowed, retry_after_seconds). The attempt is committed before
    returning, whatever the caller does next.
    """
    now = now or utcnow()
    row = await _locked_row(session, key)

    if row is None:
        # two workers may race for the first attempt; only one insert wins
        result = await session.execute(
            upsert(session, RateLimit, {"key": key, "attempts": 1, "first_attempt": now, "created_at": now}, ["key"])
        )
        await session.commit()
        if result.rowcount > 0:
            return True, 0
        row = await _locked_row(session, key)
        if row is None:
            return True, 0

    blocked_until = as_utc(row.blocked_until)
    if blocked_until is not None and now < blocked_until:
        await session.commit()
        return False, _retry_after(blocked_until, now)

    if as_utc(row.first_attempt) < now - timedelta(seconds=window_seconds):
        row.attempts = 1
        row.first_attempt = now
        row.blocked_until = None
        await session.commit()
        return True, 0

    if row.attempts >= max_attempts:
        # still inside the window: a lapsed block starts again
        row.blocked_until = now + timedelta(seconds=block_seconds)
        await session.commit()
        logger.warning("Blocking %s for %ss after %d attempts", key, block_seconds, row.attempts)
        return False, _retry_after(row.blocked_until, now)

    row.attempts += 1
    await session.commit()
    return True, 0


async def reset_rate_limit(session: AsyncSession, key: str) -> None:
    await session.execute(
        delete(RateLimit).where(RateLimit.key == key).execution_options(synchronize_session=False)
    )
    await session.commit()


async def get_rate_limit(session: AsyncSession, key: str) -> RateLimit | None:
    stmt = select(RateLimit).where(RateLimit.key == key).execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalar_one_or_none()


async def cleanup_rate_limits(
    session: AsyncSession,
    max_age_seconds: float = ATTEMPT_RECORD_MAX_AGE_SECONDS,
    now: datetime | None = None,
) -> int:
    """
    Delete rows that are not blocked (or whose block lapsed) and whose window
    started more than ``max_age_seconds`` ago. Returns the number deleted.
    """
    now = now or utcnow()
    stmt = delete(RateLimit).where(
        or_(RateLimit.blocked_until.is_(None), RateLimit.blocked_until < now),
        RateLimit.first_attempt < now - timedelta(seconds=max_age_seconds),
    ).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    await session.commit()
    if result.rowcount:
        logger.info("Removed %d stale rate limit rows", result.rowcount)
    return result.rowcount or 0
