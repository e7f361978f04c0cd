from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import LIBRARY_STATUSES
from mediashelf.core.exceptions import NotFoundError, ValidationError
from mediashelf.core.validation import validate_domain, validate_library_status, validate_notes, validate_rating
from mediashelf.db.base import utcnow
from mediashelf.db.models import LibraryEntry

logger = logging.getLogger(__name__)

LIBRARY_FIELDS = (
    "external_id",
    "title",
    "creator",
    "media_type",
    "release_date",
    "poster_url",
    "genres",
    "status",
    "personal_rating",
    "notes",
    "extra",
)


def backlog_status(domain: str) -> str:
    return LIBRARY_STATUSES[domain][0]


def done_status(domain: str) -> str:
    return LIBRARY_STATUSES[domain][-1]


def _apply_status(entry: LibraryEntry, status: str) -> None:
    entry.status = status
    done = status == done_status(entry.domain)
    if done and not entry.done:
        entry.done_at = utcnow()
    elif not done:
        entry.done_at = None
    entry.done = done


async def list_entries(session: AsyncSession, user_id: int, domain: str, status: str | None = None) -> list[LibraryEntry]:
    validate_domain(domain)
    stmt = select(LibraryEntry).where(LibraryEntry.user_id == user_id, LibraryEntry.domain == domain)
    if status is not None:
        stmt = stmt.where(LibraryEntry.status == validate_library_status(domain, status))
    stmt = stmt.order_by(LibraryEntry.created_at.desc(), LibraryEntry.id.desc())
    return list((await session.execute(stmt)).scalars().all())


async def get_entry(session: AsyncSession, user_id: int, domain: str, entry_id: int) -> LibraryEntry:
    validate_domain(domain)
    stmt = select(LibraryEntry).where(
        LibraryEntry.id == entry_id,
        LibraryEntry.user_id == user_id,
        LibraryEntry.domain == domain,
    )
    entry = (await session.execute(stmt)).scalar_one_or_none()
    if entry is None:
        raise NotFoundError(f"Library entry {entry_id} ({domain}) not found for user {user_id}", user_message="Item not found")
    return entry


async def add_entry(session: AsyncSession, user_id: int, domain: str, data: dict[str, Any]) -> LibraryEntry:
    validate_domain(domain)
    values = {k: v for k, v in data.items() if k in LIBRARY_FIELDS}
    if not values.get("external_id") or not values.get("title"):
        raise ValidationError("external_id and title are required", user_message="Item needs an id and a title")

    status = validate_library_status(domain, values.pop("status", None) or backlog_status(domain))
    values["personal_rating"] = validate_rating(values.get("personal_rating"))
    values["notes"] = validate_notes(values.get("notes"))
    values["extra"] = values.get("extra") or {}

    entry = LibraryEntry(user_id=user_id, domain=domain, done=False, **values)
    _apply_status(entry, status)
    session.add(entry)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ValidationError(
            f"Duplicate {domain} entry {values['external_id']} for user {user_id}",
            user_message="Already in your library",
        ) from e
    await session.refresh(entry)
    return entry


async def update_entry(session: AsyncSession, user_id: int, domain: str, entry_id: int, updates: dict[str, Any]) -> LibraryEntry:
    entry = await get_entry(session, user_id, domain, entry_id)
    for key, value in updates.items():
        if key not in LIBRARY_FIELDS or key == "external_id":
            continue
        if key == "status":
            _apply_status(entry, validate_library_status(domain, value))
        elif key == "personal_rating":
            entry.personal_rating = validate_rating(value)
        elif key == "notes":
            entry.notes = validate_notes(value)
        else:
            setattr(entry, key, value)
    entry.updated_at = utcnow()
    await session.commit()
    return entry


async def set_status(session: AsyncSession, user_id: int, domain: str, entry_id: int, status: str) -> LibraryEntry:
    """Move an entry to ``status``; the domain's final status marks it done."""
    return await update_entry(session, user_id, domain, entry_id, {"status": status})


async def toggle_done(session: AsyncSession, user_id: int, domain: str, entry_id: int) -> LibraryEntry:
    entry = await get_entry(session, user_id, domain, entry_id)
    status = backlog_status(domain) if entry.done else done_status(domain)
    _apply_status(entry, status)
    entry.updated_at = utcnow()
    await session.commit()
    return entry


async def delete_entry(session: AsyncSession, user_id: int, domain: str, entry_id: int) -> None:
    entry = await get_entry(session, user_id, domain, entry_id)
    await session.delete(entry)
    await session.commit()
