from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import (
    DIRECTION_RECEIVED,
    DIRECTION_SENT,
    MAX_MESSAGE_LENGTH,
    REC_HIT,
    REC_MISS,
    REC_PENDING,
    REC_STATUSES,
    REC_TYPES,
)
from mediashelf.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from mediashelf.core.validation import validate_media_type, validate_notes
from mediashelf.db.base import utcnow
from mediashelf.db.models import Recommendation, UserProfile
from mediashelf.db.repositories.connections import are_connected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FriendStats:
    user_id: int
    display_name: str
    pending_count: int = 0
    total_count: int = 0
    hit_count: int = 0
    miss_count: int = 0


@dataclass(frozen=True)
class QuickStats:
    hits: int
    misses: int
    queue: int
    sent: int


def _validate_message(message: str | None) -> str | None:
    if message is None:
        return None
    message = message.strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message too long ({len(message)} chars)",
            user_message=f"Message is too long (maximum {MAX_MESSAGE_LENGTH} characters)",
        )
    return message or None


async def _get_rec(session: AsyncSession, rec_id: int) -> Recommendation:
    rec = (await session.execute(select(Recommendation).where(Recommendation.id == rec_id))).scalar_one_or_none()
    if rec is None:
        raise NotFoundError(f"Recommendation {rec_id} not found", user_message="Recommendation not found")
    return rec


async def get_recommendations(
    session: AsyncSession,
    user_id: int,
    direction: str = DIRECTION_RECEIVED,
    media_type: str | None = None,
    status: str | None = None,
    from_user_id: int | None = None,
) -> list[Recommendation]:
    """
    Recommendations received by (or sent by) ``user_id``, newest first.

    Optional filters narrow by media type, status and sender.
    """
    if direction == DIRECTION_RECEIVED:
        stmt = select(Recommendation).where(Recommendation.to_user_id == user_id)
    elif direction == DIRECTION_SENT:
        stmt = select(Recommendation).where(Recommendation.from_user_id == user_id)
    else:
        raise ValidationError(f"Unknown direction {direction!r}", user_message="Direction must be 'received' or 'sent'")

    if status is not None:
        if status not in REC_STATUSES:
            raise ValidationError(f"Unknown status {status!r}", user_message=f"Status must be one of: {', '.join(REC_STATUSES)}")
        stmt = stmt.where(Recommendation.status == status)
    if from_user_id is not None:
        stmt = stmt.where(Recommendation.from_user_id == from_user_id)
    if media_type is not None:
        stmt = stmt.where(Recommendation.media_type == validate_media_type(media_type))

    stmt = stmt.order_by(Recommendation.created_at.desc(), Recommendation.id.desc())
    return list((await session.execute(stmt)).scalars().all())


async def send_recommendation(
    session: AsyncSession,
    from_user_id: int,
    to_user_id: int,
    data: dict[str, Any],
) -> Recommendation:
    if from_user_id == to_user_id:
        raise ValidationError("Self recommendation", user_message="You cannot recommend something to yourself")
    if not await are_connected(session, from_user_id, to_user_id):
        raise PermissionDeniedError(
            f"User {from_user_id} is not connected to {to_user_id}",
            user_message="You can only recommend to your connections",
        )

    rec_type = data.get("recommendation_type") or "watch"
    if rec_type not in REC_TYPES:
        raise ValidationError(f"Unknown recommendation type {rec_type!r}", user_message=f"Type must be one of: {', '.join(REC_TYPES)}")

    rec = Recommendation(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        external_id=str(data["external_id"]),
        media_type=validate_media_type(data["media_type"]),
        title=data["title"],
        poster_url=data.get("poster_url"),
        release_date=data.get("release_date"),
        overview=data.get("overview"),
        recommendation_type=rec_type,
        status=REC_PENDING,
        sent_message=_validate_message(data.get("sent_message")),
    )
    session.add(rec)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ValidationError(
            f"Duplicate recommendation {data['external_id']} from {from_user_id} to {to_user_id}",
            user_message="You already recommended this to them",
        ) from e
    await session.refresh(rec)
    logger.info("Recommendation %s sent from %s to %s", rec.id, from_user_id, to_user_id)
    return rec


async def update_status(session: AsyncSession, user_id: int, rec_id: int, status: str) -> Recommendation:
    """Recipient marks a recommendation; anything but pending stamps ``consumed_at``."""
    if status not in REC_STATUSES:
        raise ValidationError(f"Unknown status {status!r}", user_message=f"Status must be one of: {', '.join(REC_STATUSES)}")
    rec = await _get_rec(session, rec_id)
    if rec.to_user_id != user_id:
        raise PermissionDeniedError(f"User {user_id} is not the recipient of {rec_id}", user_message="Not allowed")

    rec.status = status
    rec.consumed_at = utcnow() if status != REC_PENDING else None
    await session.commit()
    return rec


async def update_sender_note(session: AsyncSession, user_id: int, rec_id: int, note: str | None) -> Recommendation:
    rec = await _get_rec(session, rec_id)
    if rec.from_user_id != user_id:
        raise PermissionDeniedError(f"User {user_id} is not the sender of {rec_id}", user_message="Not allowed")
    rec.sender_note = validate_notes(note)
    await session.commit()
    return rec


async def update_recipient_note(session: AsyncSession, user_id: int, rec_id: int, note: str | None) -> Recommendation:
    rec = await _get_rec(session, rec_id)
    if rec.to_user_id != user_id:
        raise PermissionDeniedError(f"User {user_id} is not the recipient of {rec_id}", user_message="Not allowed")
    rec.recipient_note = validate_notes(note)
    await session.commit()
    return rec


async def delete_recommendation(session: AsyncSession, user_id: int, rec_id: int) -> None:
    """Either side of a recommendation may delete it."""
    stmt = select(Recommendation).where(
        Recommendation.id == rec_id,
        or_(Recommendation.from_user_id == user_id, Recommendation.to_user_id == user_id),
    )
    rec = (await session.execute(stmt)).scalar_one_or_none()
    if rec is None:
        raise NotFoundError(f"Recommendation {rec_id} not found for user {user_id}", user_message="Recommendation not found")
    await session.delete(rec)
    await session.commit()


async def get_friends_with_recommendations(
    session: AsyncSession,
    user_id: int,
    media_type: str | None = None,
) -> list[FriendStats]:
    """Per-sender counts over everything ``user_id`` has received, in order of first appearance."""
    recs = await get_recommendations(session, user_id, DIRECTION_RECEIVED, media_type=media_type)
    if not recs:
        return []

    sender_ids = {r.from_user_id for r in recs}
    names = dict(
        (await session.execute(select(UserProfile.id, UserProfile.display_name).where(UserProfile.id.in_(sender_ids)))).all()
    )

    counts: dict[int, dict[str, int]] = {}
    for rec in recs:
        c = counts.setdefault(rec.from_user_id, {"pending_count": 0, "total_count": 0, "hit_count": 0, "miss_count": 0})
        c["total_count"] += 1
        if rec.status == REC_PENDING:
            c["pending_count"] += 1
        elif rec.status == REC_HIT:
            c["hit_count"] += 1
        elif rec.status == REC_MISS:
            c["miss_count"] += 1

    return [
        FriendStats(user_id=uid, display_name=names.get(uid) or "Unknown User", **c)
        for uid, c in counts.items()
    ]


async def get_quick_stats(session: AsyncSession, user_id: int, media_type: str | None = None) -> QuickStats:
    received = await get_recommendations(session, user_id, DIRECTION_RECEIVED, media_type=media_type)
    sent = await get_recommendations(session, user_id, DIRECTION_SENT, media_type=media_type)
    return QuickStats(
        hits=sum(1 for r in received if r.status == REC_HIT),
        misses=sum(1 for r in received if r.status == REC_MISS),
        queue=sum(1 for r in received if r.status == REC_PENDING),
        sent=len(sent),
    )
