"""
User-curated media lists and their sharing.

Access model:
    owner  - everything, including sharing and deleting the list
    editor - read the list, add and remove items
    viewer - read only
Public lists can be read by anyone.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import (
    LIST_DOMAINS,
    LIST_MEMBER_ROLES,
    LIST_ROLE_EDITOR,
    LIST_ROLE_OWNER,
)
from mediashelf.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from mediashelf.core.validation import validate_list_title, validate_media_type
from mediashelf.db.base import utcnow
from mediashelf.db.models import Connection, MediaList, MediaListItem, MediaListMember, UserProfile
from mediashelf.db.utils import upsert

logger = logging.getLogger(__name__)


def _validate_list_domain(domain: str) -> str:
    if domain not in LIST_DOMAINS:
        raise ValidationError(f"Unknown list domain {domain!r}", user_message=f"List type must be one of: {', '.join(LIST_DOMAINS)}")
    return domain


def _validate_member_role(role: str) -> str:
    if role not in LIST_MEMBER_ROLES:
        raise ValidationError(f"Unknown member role {role!r}", user_message="Role must be 'viewer' or 'editor'")
    return role


def _year(release_date: str | None) -> int | None:
    if not release_date:
        return None
    try:
        return int(release_date.split("-", 1)[0])
    except ValueError:
        return None


async def _get_list(session: AsyncSession, list_id: int) -> MediaList:
    media_list = (await session.execute(select(MediaList).where(MediaList.id == list_id))).scalar_one_or_none()
    if media_list is None:
        raise NotFoundError(f"Media list {list_id} not found", user_message="List not found")
    return media_list


async def get_my_role(session: AsyncSession, user_id: int, list_id: int) -> str | None:
    """``owner``, ``editor``, ``viewer`` or None when the user has no access."""
    media_list = await _get_list(session, list_id)
    if media_list.owner_id == user_id:
        return LIST_ROLE_OWNER
    stmt = select(MediaListMember.role).where(MediaListMember.list_id == list_id, MediaListMember.user_id == user_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def _require_read(session: AsyncSession, user_id: int, list_id: int) -> MediaList:
    media_list = await _get_list(session, list_id)
    if media_list.is_public or await get_my_role(session, user_id, list_id) is not None:
        return media_list
    # hide private lists from outsiders
    raise NotFoundError(f"Media list {list_id} not visible to {user_id}", user_message="List not found")


async def _require_edit(session: AsyncSession, user_id: int, list_id: int) -> MediaList:
    media_list = await _require_read(session, user_id, list_id)
    if await get_my_role(session, user_id, list_id) not in (LIST_ROLE_OWNER, LIST_ROLE_EDITOR):
        raise PermissionDeniedError(f"User {user_id} cannot edit list {list_id}", user_message="You can only view this list")
    return media_list


async def _require_owner(session: AsyncSession, user_id: int, list_id: int) -> MediaList:
    media_list = await _require_read(session, user_id, list_id)
    if media_list.owner_id != user_id:
        raise PermissionDeniedError(f"User {user_id} does not own list {list_id}", user_message="Only the list owner can do that")
    return media_list


async def get_lists(session: AsyncSession, user_id: int, domain: str | None = None) -> list[tuple[MediaList, int]]:
    """Lists the user owns or was shared into, with their item counts, most recently updated first."""
    item_count = (
        select(func.count(MediaListItem.id)).where(MediaListItem.list_id == MediaList.id).correlate(MediaList).scalar_subquery()
    )
    member_of = select(MediaListMember.list_id).where(MediaListMember.user_id == user_id)
    stmt = select(MediaList, item_count).where(or_(MediaList.owner_id == user_id, MediaList.id.in_(member_of)))
    if domain is not None:
        stmt = stmt.where(MediaList.media_domain == _validate_list_domain(domain))
    stmt = stmt.order_by(MediaList.updated_at.desc(), MediaList.id.desc())
    rows = (await session.execute(stmt)).all()
    return [(r[0], int(r[1] or 0)) for r in rows]


async def get_list(session: AsyncSession, user_id: int, list_id: int) -> MediaList:
    return await _require_read(session, user_id, list_id)


async def create_list(
    session: AsyncSession,
    owner_id: int,
    domain: str,
    title: str,
    description: str | None = None,
    is_public: bool = False,
) -> MediaList:
    media_list = MediaList(
        owner_id=owner_id,
        media_domain=_validate_list_domain(domain),
        title=validate_list_title(title),
        description=(description or "").strip() or None,
        is_public=is_public,
    )
    session.add(media_list)
    await session.commit()
    await session.refresh(media_list)
    return media_list


async def update_list(session: AsyncSession, user_id: int, list_id: int, updates: dict[str, Any]) -> MediaList:
    media_list = await _require_owner(session, user_id, list_id)
    if "title" in updates:
        media_list.title = validate_list_title(updates["title"])
    if "description" in updates:
        media_list.description = (updates["description"] or "").strip() or None
    if "is_public" in updates:
        media_list.is_public = bool(updates["is_public"])
    media_list.updated_at = utcnow()
    await session.commit()
    return media_list


async def delete_list(session: AsyncSession, user_id: int, list_id: int) -> None:
    media_list = await _require_owner(session, user_id, list_id)
    await session.delete(media_list)
    await session.commit()


async def get_items(session: AsyncSession, user_id: int, list_id: int) -> list[MediaListItem]:
    await _require_read(session, user_id, list_id)
    stmt = (
        select(MediaListItem)
        .where(MediaListItem.list_id == list_id)
        .order_by(MediaListItem.added_at.desc(), MediaListItem.id.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def add_item(session: AsyncSession, user_id: int, list_id: int, item: dict[str, Any]) -> MediaListItem:
    media_list = await _require_edit(session, user_id, list_id)
    row = MediaListItem(
        list_id=list_id,
        added_by=user_id,
        external_id=str(item["external_id"]),
        media_type=validate_media_type(item["media_type"]),
        title=item["title"],
        subtitle=item.get("subtitle"),
        poster_url=item.get("poster_url"),
        year=item.get("year") or _year(item.get("release_date")),
    )
    session.add(row)
    media_list.updated_at = utcnow()
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ValidationError(
            f"Item {item['external_id']} already in list {list_id}",
            user_message="Already in this list",
        ) from e
    await session.refresh(row)
    return row


async def remove_item(session: AsyncSession, user_id: int, list_id: int, item_id: int) -> None:
    media_list = await _require_edit(session, user_id, list_id)
    stmt = select(MediaListItem).where(MediaListItem.id == item_id, MediaListItem.list_id == list_id)
    row = (await session.execute(stmt)).scalar_one_or_none()
    if row is None:
        raise NotFoundError(f"Item {item_id} not in list {list_id}", user_message="Item not found")
    await session.delete(row)
    media_list.updated_at = utcnow()
    await session.commit()


async def get_members(session: AsyncSession, user_id: int, list_id: int) -> list[tuple[MediaListMember, str]]:
    await _require_read(session, user_id, list_id)
    stmt = (
        select(MediaListMember, UserProfile.display_name)
        .join(UserProfile, UserProfile.id == MediaListMember.user_id)
        .where(MediaListMember.list_id == list_id)
        .order_by(UserProfile.display_name)
    )
    rows = (await session.execute(stmt)).all()
    return [(r[0], r[1]) for r in rows]


async def share_list(session: AsyncSession, user_id: int, list_id: int, user_ids: Iterable[int], role: str) -> int:
    """
    Share a list with some of the owner's connections.

    Sharing with anyone who is not a connection is refused as a whole.
    Re-sharing an existing member updates their role. Returns the number of members written.
    """
    await _require_owner(session, user_id, list_id)
    role = _validate_member_role(role)
    user_ids = [uid for uid in dict.fromkeys(user_ids) if uid != user_id]
    if not user_ids:
        return 0

    stmt = select(Connection.friend_id).where(Connection.user_id == user_id, Connection.friend_id.in_(user_ids))
    connected = set((await session.execute(stmt)).scalars().all())
    outsiders = [uid for uid in user_ids if uid not in connected]
    if outsiders:
        raise PermissionDeniedError(
            f"Users {outsiders} are not connected to {user_id}",
            user_message="Can only share with your connections",
        )

    for uid in user_ids:
        await session.execute(
            upsert(
                session,
                MediaListMember,
                {"list_id": list_id, "user_id": uid, "role": role, "created_at": utcnow()},
                index_elements=["list_id", "user_id"],
                update_fields=["role"],
            )
        )
    await session.commit()
    logger.info("List %s shared with %d user(s) as %s", list_id, len(user_ids), role)
    return len(user_ids)


async def unshare_list(session: AsyncSession, user_id: int, list_id: int, member_id: int) -> None:
    """Owner removes a member; a member may also remove themselves."""
    if member_id != user_id:
        await _require_owner(session, user_id, list_id)
    stmt = select(MediaListMember).where(MediaListMember.list_id == list_id, MediaListMember.user_id == member_id)
    member = (await session.execute(stmt)).scalar_one_or_none()
    if member is None:
        raise NotFoundError(f"User {member_id} is not a member of list {list_id}", user_message="Member not found")
    await session.delete(member)
    await session.commit()


async def update_member_role(session: AsyncSession, user_id: int, list_id: int, member_id: int, role: str) -> MediaListMember:
    await _require_owner(session, user_id, list_id)
    role = _validate_member_role(role)
    stmt = select(MediaListMember).where(MediaListMember.list_id == list_id, MediaListMember.user_id == member_id)
    member = (await session.execute(stmt)).scalar_one_or_none()
    if member is None:
        raise NotFoundError(f"User {member_id} is not a member of list {list_id}", user_message="Member not found")
    member.role = role
    await session.commit()
    return member
