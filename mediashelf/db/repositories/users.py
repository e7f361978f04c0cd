from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import ADMIN_ROLES, ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_USER
from mediashelf.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from mediashelf.db.models import UserProfile

logger = logging.getLogger(__name__)


async def get_user(session: AsyncSession, user_id: int) -> UserProfile | None:
    return (await session.execute(select(UserProfile).where(UserProfile.id == user_id))).scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> UserProfile | None:
    stmt = select(UserProfile).where(UserProfile.email == email.strip().lower())
    return (await session.execute(stmt)).scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    password_hash: str,
    display_name: str | None = None,
    role: str = ROLE_USER,
) -> UserProfile:
    email = email.strip().lower()
    user = UserProfile(
        email=email,
        password_hash=password_hash,
        display_name=display_name or email.split("@", 1)[0],
        role=role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def get_role(session: AsyncSession, user_id: int) -> str:
    role = (await session.execute(select(UserProfile.role).where(UserProfile.id == user_id))).scalar_one_or_none()
    return role or ROLE_USER


async def is_admin(session: AsyncSession, user_id: int) -> bool:
    return await get_role(session, user_id) in ADMIN_ROLES


async def is_super_admin(session: AsyncSession, user_id: int) -> bool:
    return await get_role(session, user_id) == ROLE_SUPER_ADMIN


async def set_role(session: AsyncSession, user_id: int, role: str) -> UserProfile:
    """
    Promote/demote a user between ``user`` and ``admin``.

    The super admin can never be demoted, and nobody is promoted to super
    admin this way (see ``set_super_admin``).
    """
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise ValidationError(f"Cannot assign role {role!r}", user_message="Role must be 'user' or 'admin'")

    user = await get_user(session, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", user_message="User not found")
    if user.role == ROLE_SUPER_ADMIN:
        raise PermissionDeniedError(
            f"Refusing to change role of super admin {user_id}",
            user_message="Cannot modify super admin account",
        )

    user.role = role
    await session.commit()
    logger.info("User %s role set to %s", user_id, role)
    return user


async def set_super_admin(session: AsyncSession, email: str) -> UserProfile:
    """
    Make the user with ``email`` the single super admin.

    A previous super admin (if any) is kept as a regular admin.
    """
    user = await get_user_by_email(session, email)
    if user is None:
        raise NotFoundError(f"No user with email {email}", user_message="User not found")

    previous = (
        await session.execute(
            select(UserProfile).where(UserProfile.role == ROLE_SUPER_ADMIN, UserProfile.id != user.id)
        )
    ).scalars().all()
    for p in previous:
        p.role = ROLE_ADMIN

    user.role = ROLE_SUPER_ADMIN
    await session.commit()
    return user


async def list_users(session: AsyncSession, limit: int = 100, offset: int = 0) -> list[UserProfile]:
    stmt = select(UserProfile).order_by(UserProfile.created_at.desc(), UserProfile.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def count_users(session: AsyncSession) -> int:
    return int((await session.execute(select(func.count()).select_from(UserProfile))).scalar_one())


def _search_filter(query: str):
    pattern = f"%{query.strip().lower()}%"
    return or_(func.lower(UserProfile.display_name).like(pattern), UserProfile.email.like(pattern))


async def search_users(
    session: AsyncSession,
    query: str,
    exclude_user_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[UserProfile]:
    stmt = select(UserProfile).where(_search_filter(query))
    if exclude_user_id is not None:
        stmt = stmt.where(UserProfile.id != exclude_user_id)
    stmt = stmt.order_by(UserProfile.display_name, UserProfile.id).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def count_search_users(session: AsyncSession, query: str) -> int:
    stmt = select(func.count()).select_from(UserProfile).where(_search_filter(query))
    return int((await session.execute(stmt)).scalar_one())
