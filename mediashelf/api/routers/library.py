"""
Books, games and music libraries share one set of endpoints keyed by ``domain``.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import LibraryEntryIn, LibraryEntryOut, LibraryEntryUpdate, StatusIn
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import library as library_repo
from mediashelf.db.session import get_async_session

router = APIRouter(prefix="/api/library", tags=["library"])


@router.get("/{domain}", response_model=list[LibraryEntryOut])
async def list_entries(
    domain: str,
    status: str | None = None,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await library_repo.list_entries(session, user.id, domain, status)


@router.post("/{domain}", response_model=LibraryEntryOut, status_code=201)
async def add_entry(
    domain: str,
    body: LibraryEntryIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await library_repo.add_entry(session, user.id, domain, body.model_dump())


@router.patch("/{domain}/{entry_id}", response_model=LibraryEntryOut)
async def update_entry(
    domain: str,
    entry_id: int,
    body: LibraryEntryUpdate,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await library_repo.update_entry(session, user.id, domain, entry_id, body.model_dump(exclude_unset=True))


@router.put("/{domain}/{entry_id}/status", response_model=LibraryEntryOut)
async def set_status(
    domain: str,
    entry_id: int,
    body: StatusIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await library_repo.set_status(session, user.id, domain, entry_id, body.status)


@router.post("/{domain}/{entry_id}/toggle-done", response_model=LibraryEntryOut)
async def toggle_done(
    domain: str,
    entry_id: int,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await library_repo.toggle_done(session, user.id, domain, entry_id)


@router.delete("/{domain}/{entry_id}", status_code=204)
async def delete_entry(
    domain: str,
    entry_id: int,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    await library_repo.delete_entry(session, user.id, domain, entry_id)
    return Response(status_code=204)
