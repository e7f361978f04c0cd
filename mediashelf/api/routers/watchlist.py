from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import NotesIn, WatchlistItemIn, WatchlistItemOut, WatchlistItemUpdate
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import watchlist as watchlist_repo
from mediashelf.db.session import get_async_session

router = APIRouter(prefix="/api/watchlist", tags=["watchlist"])


@router.get("", response_model=list[WatchlistItemOut])
async def list_watchlist(user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await watchlist_repo.get_watchlist(session, user.id)


@router.post("", response_model=WatchlistItemOut, status_code=201)
async def add_item(
    body: WatchlistItemIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await watchlist_repo.add_to_watchlist(session, user.id, body.model_dump())


@router.get("/contains/{external_id}")
async def contains(external_id: str, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return {"in_watchlist": await watchlist_repo.is_in_watchlist(session, user.id, external_id)}


@router.post("/{item_id}/toggle-watched", response_model=WatchlistItemOut)
async def toggle_watched(item_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await watchlist_repo.toggle_watched(session, user.id, item_id)


@router.patch("/{item_id}", response_model=WatchlistItemOut)
async def update_item(
    item_id: int,
    body: WatchlistItemUpdate,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await watchlist_repo.update_watchlist_item(session, user.id, item_id, body.model_dump(exclude_unset=True))


@router.put("/{item_id}/notes", response_model=WatchlistItemOut)
async def update_notes(
    item_id: int,
    body: NotesIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await watchlist_repo.update_notes(session, user.id, item_id, body.notes)


@router.delete("/{item_id}", status_code=204)
async def delete_item(item_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    await watchlist_repo.delete_from_watchlist(session, user.id, item_id)
    return Response(status_code=204)
