from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import INVITE_CODE_ALPHABET, INVITE_CODE_SEGMENT_LENGTH, INVITE_CODE_SEGMENTS
from mediashelf.core.exceptions import NotFoundError, ValidationError
from mediashelf.core.validation import normalize_email, normalize_invite_code
from mediashelf.db.base import as_utc, utcnow
from mediashelf.db.models import InviteCode

logger = logging.getLogger(__name__)


def generate_secure_code() -> str:
    """
    Random invite code in the form XXX-XXX-XXX-XXX.
    The alphabet leaves out characters that are easy to mistype (0/O, 1/I/L, S, Z).
    """
    segments = [
        "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_SEGMENT_LENGTH))
        for _ in range(INVITE_CODE_SEGMENTS)
    ]
    return "-".join(segments)


def _is_usable(code: InviteCode, email: str | None = None) -> bool:
    if not code.is_active:
        return False
    if code.intended_email is not None and (email or "").strip().lower() != code.intended_email:
        return False
    expires_at = as_utc(code.expires_at)
    if expires_at is not None and expires_at <= utcnow():
        return False
    return code.current_uses < code.max_uses


async def get_invite_code(session: AsyncSession, code: str) -> InviteCode | None:
    stmt = select(InviteCode).where(InviteCode.code == normalize_invite_code(code))
    return (await session.execute(stmt)).scalar_one_or_none()


async def create_invite_code(
    session: AsyncSession,
    created_by: int | None,
    notes: str | None = None,
    max_uses: int = 1,
    expires_in_days: int | None = None,
    intended_email: str | None = None,
) -> InviteCode:
    if max_uses < 1:
        raise ValidationError(f"max_uses={max_uses}", user_message="Max uses must be at least 1")

    expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None
    if intended_email is not None and intended_email.strip():
        intended_email = normalize_email(intended_email)
    else:
        intended_email = None
    invite = InviteCode(
        code=generate_secure_code(),
        created_by=created_by,
        notes=notes,
        max_uses=max_uses,
        expires_at=expires_at,
        intended_email=intended_email,
    )
    session.add(invite)
    await session.commit()
    await session.refresh(invite)
    logger.info("Invite code %s created by %s (max_uses=%d)", invite.code, created_by, max_uses)
    return invite


async def validate_invite_code(session: AsyncSession, code: str, email: str | None = None) -> bool:
    """
    Check that a code exists, is active, not expired and not used up. Does not consume it.

    A code issued for a specific address only validates for that ``email``.
    """
    try:
        invite = await get_invite_code(session, code)
    except ValidationError:
        return False
    return invite is not None and _is_usable(invite, email)


async def consume_invite_code(session: AsyncSession, code: str, user_id: int, email: str | None = None) -> bool:
    """
    Mark one use of ``code`` by ``user_id``. The first use records who used it and when.
    Returns False when the code is not usable.
    """
    stmt = select(InviteCode).where(InviteCode.code == normalize_invite_code(code)).with_for_update()
    invite = (await session.execute(stmt)).scalar_one_or_none()
    if invite is None or not _is_usable(invite, email):
        return False

    if invite.current_uses == 0:
        invite.used_by = user_id
        invite.used_at = utcnow()
    invite.current_uses += 1
    await session.commit()
    return True


async def list_invite_codes(session: AsyncSession) -> list[InviteCode]:
    stmt = select(InviteCode).order_by(InviteCode.created_at.desc(), InviteCode.id.desc())
    return list((await session.execute(stmt)).scalars().all())


async def deactivate_invite_code(session: AsyncSession, invite_id: int) -> InviteCode:
    invite = (await session.execute(select(InviteCode).where(InviteCode.id == invite_id))).scalar_one_or_none()
    if invite is None:
        raise NotFoundError(f"Invite code {invite_id} not found", user_message="Invite code not found")
    invite.is_active = False
    await session.commit()
    return invite


async def delete_invite_code(session: AsyncSession, invite_id: int) -> None:
    invite = (await session.execute(select(InviteCode).where(InviteCode.id == invite_id))).scalar_one_or_none()
    if invite is None:
        raise NotFoundError(f"Invite code {invite_id} not found", user_message="Invite code not found")
    await session.delete(invite)
    await session.commit()
