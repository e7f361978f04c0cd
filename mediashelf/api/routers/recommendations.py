from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import FriendStatsOut, NoteIn, QuickStatsOut, RecommendationIn, RecommendationOut, StatusIn
from mediashelf.core.constants import DIRECTION_RECEIVED
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import recommendations as recs_repo
from mediashelf.db.session import get_async_session

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("", response_model=list[RecommendationOut])
async def list_recommendations(
    direction: str = DIRECTION_RECEIVED,
    media_type: str | None = None,
    status: str | None = None,
    from_user_id: int | None = None,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.get_recommendations(
        session, user.id, direction=direction, media_type=media_type, status=status, from_user_id=from_user_id
    )


@router.post("", response_model=RecommendationOut, status_code=201)
async def send(
    body: RecommendationIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    data = body.model_dump(exclude={"to_user_id"})
    return await recs_repo.send_recommendation(session, user.id, body.to_user_id, data)


@router.get("/friends", response_model=list[FriendStatsOut])
async def friends_with_recommendations(
    media_type: str | None = None,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.get_friends_with_recommendations(session, user.id, media_type)


@router.get("/stats", response_model=QuickStatsOut)
async def quick_stats(
    media_type: str | None = None,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.get_quick_stats(session, user.id, media_type)


@router.put("/{rec_id}/status", response_model=RecommendationOut)
async def update_status(
    rec_id: int,
    body: StatusIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.update_status(session, user.id, rec_id, body.status)


@router.put("/{rec_id}/sender-note", response_model=RecommendationOut)
async def update_sender_note(
    rec_id: int,
    body: NoteIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.update_sender_note(session, user.id, rec_id, body.note)


@router.put("/{rec_id}/recipient-note", response_model=RecommendationOut)
async def update_recipient_note(
    rec_id: int,
    body: NoteIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await recs_repo.update_recipient_note(session, user.id, rec_id, body.note)


@router.delete("/{rec_id}", status_code=204)
async def delete(rec_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    await recs_repo.delete_recommendation(session, user.id, rec_id)
    return Response(status_code=204)
