"""
Admin endpoints. Every route requires an ``admin`` or ``super_admin`` user.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_admin_user
from mediashelf.api.schemas import (
    AuditLogOut,
    DashboardStatsOut,
    InviteCodeIn,
    InviteCodeOut,
    PopularMediaOut,
    RecommendationOut,
    RoleIn,
    UserOut,
    UserPageOut,
    WarmCacheOut,
)
from mediashelf.db.models import UserProfile
from mediashelf.db.session import get_async_session
from mediashelf.services import admin_service, media_details_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/stats", response_model=DashboardStatsOut)
async def stats(admin: UserProfile = Depends(get_admin_user), session: AsyncSession = Depends(get_async_session)):
    return await admin_service.get_dashboard_stats(session)


@router.get("/users", response_model=UserPageOut)
async def users(
    page: int = 1,
    per_page: int = 20,
    search: str = "",
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    rows, total_pages = await admin_service.list_users(session, page=page, per_page=per_page, search=search)
    return UserPageOut(users=[UserOut.model_validate(u) for u in rows], total_pages=total_pages)


@router.put("/users/{user_id}/role", response_model=UserOut)
async def update_role(
    user_id: int,
    body: RoleIn,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await admin_service.update_user_role(session, admin, user_id, body.role)


@router.get("/popular", response_model=list[PopularMediaOut])
async def popular(admin: UserProfile = Depends(get_admin_user), session: AsyncSession = Depends(get_async_session)):
    return await admin_service.get_popular_media(session)


@router.get("/activity", response_model=list[RecommendationOut])
async def activity(admin: UserProfile = Depends(get_admin_user), session: AsyncSession = Depends(get_async_session)):
    return await admin_service.get_recent_activity(session)


@router.get("/invite-codes", response_model=list[InviteCodeOut])
async def list_codes(admin: UserProfile = Depends(get_admin_user), session: AsyncSession = Depends(get_async_session)):
    return await admin_service.list_invite_codes(session, admin)


@router.post("/invite-codes", response_model=InviteCodeOut, status_code=201)
async def create_code(
    body: InviteCodeIn,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await admin_service.create_invite_code(
        session,
        admin,
        notes=body.notes,
        max_uses=body.max_uses,
        expires_in_days=body.expires_in_days,
        intended_email=body.intended_email,
    )


@router.post("/invite-codes/{invite_id}/deactivate", response_model=InviteCodeOut)
async def deactivate_code(
    invite_id: int,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await admin_service.deactivate_invite_code(session, admin, invite_id)


@router.delete("/invite-codes/{invite_id}", status_code=204)
async def delete_code(
    invite_id: int,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    await admin_service.delete_invite_code(session, admin, invite_id)
    return Response(status_code=204)


@router.get("/audit-log", response_model=list[AuditLogOut])
async def audit_log(
    page: int = 1,
    per_page: int = 50,
    action: str | None = None,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Admin actions, newest first."""
    return await admin_service.get_audit_log(session, admin, page=page, per_page=per_page, action=action)


@router.post("/cache/warm", response_model=WarmCacheOut)
async def warm_cache(
    user_id: int | None = None,
    force: bool = False,
    admin: UserProfile = Depends(get_admin_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await media_details_service.warm_cache(session, user_id=user_id, force=force)
