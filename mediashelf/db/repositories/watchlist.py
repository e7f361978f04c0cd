from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import WATCHLIST_MEDIA_TYPES
from mediashelf.core.exceptions import NotFoundError, ValidationError
from mediashelf.core.validation import validate_media_type, validate_notes
from mediashelf.db.base import utcnow
from mediashelf.db.models import WatchlistItem

logger = logging.getLogger(__name__)

# fields a client may set on insert/update
WATCHLIST_FIELDS = (
    "external_id",
    "media_type",
    "title",
    "poster_url",
    "release_date",
    "overview",
    "director",
    "cast_members",
    "genres",
    "vote_average",
    "vote_count",
    "runtime",
    "list_order",
    "notes",
)


async def get_watchlist(session: AsyncSession, user_id: int) -> list[WatchlistItem]:
    """Newest first."""
    stmt = (
        select(WatchlistItem)
        .where(WatchlistItem.user_id == user_id)
        .order_by(WatchlistItem.added_at.desc(), WatchlistItem.id.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def get_watchlist_item(session: AsyncSession, user_id: int, item_id: int) -> WatchlistItem:
    stmt = select(WatchlistItem).where(WatchlistItem.id == item_id, WatchlistItem.user_id == user_id)
    item = (await session.execute(stmt)).scalar_one_or_none()
    if item is None:
        raise NotFoundError(f"Watchlist item {item_id} not found for user {user_id}", user_message="Watchlist item not found")
    return item


async def add_to_watchlist(session: AsyncSession, user_id: int, data: dict[str, Any]) -> WatchlistItem:
    validate_media_type(data.get("media_type", ""), WATCHLIST_MEDIA_TYPES)
    values = {k: v for k, v in data.items() if k in WATCHLIST_FIELDS}
    values["notes"] = validate_notes(values.get("notes"))

    item = WatchlistItem(user_id=user_id, watched=False, **values)
    session.add(item)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ValidationError(
            f"Duplicate watchlist item {data.get('external_id')} for user {user_id}",
            user_message="Already in your watchlist",
        ) from e
    await session.refresh(item)
    return item


async def toggle_watched(session: AsyncSession, user_id: int, item_id: int) -> WatchlistItem:
    """Flip ``watched``; stamps ``watched_at`` when it becomes watched and clears it otherwise."""
    item = await get_watchlist_item(session, user_id, item_id)
    now = utcnow()
    item.watched = not item.watched
    item.watched_at = now if item.watched else None
    item.updated_at = now
    await session.commit()
    return item


async def update_watchlist_item(session: AsyncSession, user_id: int, item_id: int, updates: dict[str, Any]) -> WatchlistItem:
    item = await get_watchlist_item(session, user_id, item_id)
    if "media_type" in updates:
        validate_media_type(updates["media_type"], WATCHLIST_MEDIA_TYPES)
    if "notes" in updates:
        updates = {**updates, "notes": validate_notes(updates["notes"])}

    for key, value in updates.items():
        if key in WATCHLIST_FIELDS and key != "external_id":
            setattr(item, key, value)
    item.updated_at = utcnow()
    await session.commit()
    return item


async def update_notes(session: AsyncSession, user_id: int, item_id: int, notes: str | None) -> WatchlistItem:
    return await update_watchlist_item(session, user_id, item_id, {"notes": notes})


async def delete_from_watchlist(session: AsyncSession, user_id: int, item_id: int) -> None:
    item = await get_watchlist_item(session, user_id, item_id)
    await session.delete(item)
    await session.commit()


async def is_in_watchlist(session: AsyncSession, user_id: int, external_id: str) -> bool:
    stmt = select(WatchlistItem.id).where(
        WatchlistItem.user_id == user_id,
        WatchlistItem.external_id == external_id,
    )
    return (await session.execute(stmt)).first() is not None


async def list_watchlist_keys(session: AsyncSession, user_id: int | None = None) -> list[tuple[str, str]]:
    """Distinct (external_id, media_type) pairs, optionally for one user."""
    stmt = select(WatchlistItem.external_id, WatchlistItem.media_type).distinct()
    if user_id is not None:
        stmt = stmt.where(WatchlistItem.user_id == user_id)
    rows = (await session.execute(stmt)).all()
    return [(r[0], r[1]) for r in rows]
