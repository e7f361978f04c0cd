from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import ReviewIn, ReviewOut
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import reviews as reviews_repo
from mediashelf.db.session import get_async_session

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/mine", response_model=ReviewOut | None)
async def my_review(
    external_id: str,
    media_type: str,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await reviews_repo.get_my_review(session, user.id, external_id, media_type)


@router.get("/friends", response_model=list[ReviewOut])
async def friends_reviews(
    external_id: str,
    media_type: str,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Connections' public reviews of one title."""
    rows = await reviews_repo.get_friends_reviews(session, user.id, external_id, media_type)
    out = []
    for review, display_name in rows:
        item = ReviewOut.model_validate(review)
        item.display_name = display_name
        out.append(item)
    return out


@router.put("", response_model=ReviewOut)
async def upsert_review(
    body: ReviewIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await reviews_repo.upsert_review(session, user.id, **body.model_dump())


@router.delete("/{review_id}", status_code=204)
async def delete_review(review_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    await reviews_repo.delete_review(session, user.id, review_id)
    return Response(status_code=204)
