from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.exceptions import NotFoundError, ValidationError
from mediashelf.core.validation import validate_media_type, validate_rating, validate_review_text
from mediashelf.db.base import utcnow
from mediashelf.db.models import Connection, MediaReview, UserProfile

logger = logging.getLogger(__name__)


async def get_my_review(session: AsyncSession, user_id: int, external_id: str, media_type: str) -> MediaReview | None:
    validate_media_type(media_type)
    stmt = select(MediaReview).where(
        MediaReview.user_id == user_id,
        MediaReview.external_id == external_id,
        MediaReview.media_type == media_type,
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_friends_reviews(
    session: AsyncSession,
    user_id: int,
    external_id: str,
    media_type: str,
) -> list[tuple[MediaReview, str]]:
    """
    Public reviews of one title written by the user's connections, newest first.

    Returns (review, reviewer display name) pairs; the user's own review is never included.
    """
    validate_media_type(media_type)
    stmt = (
        select(MediaReview, UserProfile.display_name)
        .join(UserProfile, UserProfile.id == MediaReview.user_id)
        .join(Connection, (Connection.friend_id == MediaReview.user_id) & (Connection.user_id == user_id))
        .where(
            MediaReview.external_id == external_id,
            MediaReview.media_type == media_type,
            MediaReview.is_public.is_(True),
            MediaReview.user_id != user_id,
        )
        .order_by(MediaReview.created_at.desc(), MediaReview.id.desc())
    )
    rows = (await session.execute(stmt)).all()
    return [(r[0], r[1]) for r in rows]


async def upsert_review(
    session: AsyncSession,
    user_id: int,
    external_id: str,
    media_type: str,
    title: str,
    rating: int | None = None,
    liked: bool | None = None,
    review_text: str | None = None,
    is_public: bool = True,
    watched_at: datetime | None = None,
) -> MediaReview:
    """
    Create the user's review of a title, or edit the existing one.
    Editing marks the review as edited.
    """
    validate_media_type(media_type)
    rating = validate_rating(rating)
    review_text = validate_review_text(review_text)
    if rating is None and liked is None and review_text is None:
        raise ValidationError("Empty review", user_message="Add a rating, a thumbs up/down or some text")

    review = await get_my_review(session, user_id, external_id, media_type)
    now = utcnow()
    if review is None:
        review = MediaReview(
            user_id=user_id,
            external_id=external_id,
            media_type=media_type,
            title=title,
            is_edited=False,
        )
        session.add(review)
    else:
        review.is_edited = True
        review.edited_at = now
        review.updated_at = now

    review.rating = rating
    review.liked = liked
    review.review_text = review_text
    review.is_public = is_public
    review.watched_at = watched_at
    await session.commit()
    await session.refresh(review)
    return review


async def delete_review(session: AsyncSession, user_id: int, review_id: int) -> None:
    stmt = select(MediaReview).where(MediaReview.id == review_id, MediaReview.user_id == user_id)
    review = (await session.execute(stmt)).scalar_one_or_none()
    if review is None:
        raise NotFoundError(f"Review {review_id} not found for user {user_id}", user_message="Review not found")
    await session.delete(review)
    await session.commit()
