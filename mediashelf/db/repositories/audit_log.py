from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.db.models import AdminAuditLog

logger = logging.getLogger(__name__)

ACTION_UPDATE_USER_ROLE = "update_user_role"
ACTION_CREATE_INVITE_CODE = "create_invite_code"
ACTION_DEACTIVATE_INVITE_CODE = "deactivate_invite_code"
ACTION_DELETE_INVITE_CODE = "delete_invite_code"


async def log_admin_action(
    session: AsyncSession,
    admin_user_id: int,
    action: str,
    target_user_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AdminAuditLog:
    entry = AdminAuditLog(
        admin_user_id=admin_user_id,
        action=action,
        target_user_id=target_user_id,
        details=details,
    )
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    logger.info("Admin %s: %s target=%s details=%s", admin_user_id, action, target_user_id, details)
    return entry


async def list_audit_log(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    action: str | None = None,
    admin_user_id: int | None = None,
) -> list[AdminAuditLog]:
    """Newest entries first, optionally narrowed to one action or one admin."""
    stmt = select(AdminAuditLog)
    if action:
        stmt = stmt.where(AdminAuditLog.action == action)
    if admin_user_id is not None:
        stmt = stmt.where(AdminAuditLog.admin_user_id == admin_user_id)
    stmt = stmt.order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())
