from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.exceptions import PermissionDeniedError
from mediashelf.core.validation import validate_count
from mediashelf.db.base import utcnow
from mediashelf.db.models import AdminAuditLog, InviteCode, Recommendation, UserProfile, WatchlistItem
from mediashelf.db.repositories import audit_log as audit_repo
from mediashelf.db.repositories import invite_codes as invite_repo
from mediashelf.db.repositories import users as users_repo

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=30)
TOP_MEDIA_LIMIT = 10
RECENT_ACTIVITY_LIMIT = 10


@dataclass(frozen=True)
class DashboardStats:
    total_users: int
    total_watchlist_items: int
    total_watched: int
    total_invite_codes: int
    new_users_this_week: int
    new_users_this_month: int
    active_users: int


@dataclass(frozen=True)
class PopularMedia:
    external_id: str
    title: str
    media_type: str
    tracking_count: int


def require_admin(user: UserProfile) -> None:
    if not user.is_admin:
        raise PermissionDeniedError(f"User {user.id} is not an admin", user_message="Admin privileges required")


async def _count(session: AsyncSession, stmt) -> int:
    return int((await session.execute(stmt)).scalar_one() or 0)


async def get_dashboard_stats(session: AsyncSession) -> DashboardStats:
    now = utcnow()
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    active = select(func.count(func.distinct(WatchlistItem.user_id))).where(
        or_(WatchlistItem.added_at >= now - ACTIVE_WINDOW, WatchlistItem.watched_at >= now - ACTIVE_WINDOW)
    )
    return DashboardStats(
        total_users=await users_repo.count_users(session),
        total_watchlist_items=await _count(session, select(func.count()).select_from(WatchlistItem)),
        total_watched=await _count(session, select(func.count()).select_from(WatchlistItem).where(WatchlistItem.watched.is_(True))),
        total_invite_codes=await _count(session, select(func.count()).select_from(InviteCode)),
        new_users_this_week=await _count(session, select(func.count()).select_from(UserProfile).where(UserProfile.created_at >= week_ago)),
        new_users_this_month=await _count(session, select(func.count()).select_from(UserProfile).where(UserProfile.created_at >= month_ago)),
        active_users=await _count(session, active),
    )


async def list_users(session: AsyncSession, page: int = 1, per_page: int = 20, search: str = "") -> tuple[list[UserProfile], int]:
    """One page of users (optionally filtered by name/email) and the total page count."""
    validate_count(per_page)
    page = max(page, 1)

    if search.strip():
        users = await users_repo.search_users(session, search, limit=per_page, offset=(page - 1) * per_page)
        total = await users_repo.count_search_users(session, search)
    else:
        users = await users_repo.list_users(session, limit=per_page, offset=(page - 1) * per_page)
        total = await users_repo.count_users(session)
    return users, math.ceil(total / per_page)


async def update_user_role(session: AsyncSession, actor: UserProfile, user_id: int, role: str) -> UserProfile:
    require_admin(actor)
    if actor.id == user_id:
        raise PermissionDeniedError(f"Admin {actor.id} tried to change own role", user_message="You cannot change your own role")
    previous = await users_repo.get_role(session, user_id)
    user = await users_repo.set_role(session, user_id, role)
    await audit_repo.log_admin_action(
        session,
        actor.id,
        audit_repo.ACTION_UPDATE_USER_ROLE,
        target_user_id=user_id,
        details={"from": previous, "to": role},
    )
    return user


async def get_popular_media(session: AsyncSession, limit: int = TOP_MEDIA_LIMIT) -> list[PopularMedia]:
    """Titles on the most watchlists."""
    stmt = (
        select(
            WatchlistItem.external_id,
            func.max(WatchlistItem.title),
            func.max(WatchlistItem.media_type),
            func.count(WatchlistItem.id).label("n"),
        )
        .group_by(WatchlistItem.external_id)
        .order_by(func.count(WatchlistItem.id).desc(), WatchlistItem.external_id)
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [PopularMedia(external_id=r[0], title=r[1] or "Unknown", media_type=r[2] or "N/A", tracking_count=int(r[3])) for r in rows]


async def get_recent_activity(session: AsyncSession, limit: int = RECENT_ACTIVITY_LIMIT) -> list[Recommendation]:
    stmt = select(Recommendation).order_by(Recommendation.created_at.desc(), Recommendation.id.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())


async def create_invite_code(
    session: AsyncSession,
    actor: UserProfile,
    notes: str | None = None,
    max_uses: int = 1,
    expires_in_days: int | None = None,
    intended_email: str | None = None,
) -> InviteCode:
    require_admin(actor)
    invite = await invite_repo.create_invite_code(
        session,
        created_by=actor.id,
        notes=notes,
        max_uses=max_uses,
        expires_in_days=expires_in_days,
        intended_email=intended_email,
    )
    await audit_repo.log_admin_action(
        session,
        actor.id,
        audit_repo.ACTION_CREATE_INVITE_CODE,
        details={
            "invite_id": invite.id,
            "code": invite.code,
            "max_uses": invite.max_uses,
            "intended_email": invite.intended_email,
        },
    )
    return invite


async def list_invite_codes(session: AsyncSession, actor: UserProfile) -> list[InviteCode]:
    require_admin(actor)
    return await invite_repo.list_invite_codes(session)


async def deactivate_invite_code(session: AsyncSession, actor: UserProfile, invite_id: int) -> InviteCode:
    require_admin(actor)
    invite = await invite_repo.deactivate_invite_code(session, invite_id)
    await audit_repo.log_admin_action(
        session, actor.id, audit_repo.ACTION_DEACTIVATE_INVITE_CODE, details={"invite_id": invite_id, "code": invite.code}
    )
    return invite


async def delete_invite_code(session: AsyncSession, actor: UserProfile, invite_id: int) -> None:
    require_admin(actor)
    await invite_repo.delete_invite_code(session, invite_id)
    await audit_repo.log_admin_action(session, actor.id, audit_repo.ACTION_DELETE_INVITE_CODE, details={"invite_id": invite_id})


async def get_audit_log(
    session: AsyncSession,
    actor: UserProfile,
    page: int = 1,
    per_page: int = 50,
    action: str | None = None,
) -> list[AdminAuditLog]:
    require_admin(actor)
    validate_count(per_page)
    page = max(page, 1)
    return await audit_repo.list_audit_log(session, limit=per_page, offset=(page - 1) * per_page, action=action)
