from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import (
    MediaListIn,
    MediaListItemIn,
    MediaListItemOut,
    MediaListOut,
    MediaListUpdate,
    MemberOut,
    MemberRoleIn,
    MyRoleOut,
    ShareIn,
)
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import media_lists as lists_repo
from mediashelf.db.session import get_async_session

router = APIRouter(prefix="/api/lists", tags=["lists"])


@router.get("", response_model=list[MediaListOut])
async def get_lists(
    domain: str | None = None,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    rows = await lists_repo.get_lists(session, user.id, domain)
    out = []
    for media_list, count in rows:
        item = MediaListOut.model_validate(media_list)
        item.item_count = count
        out.append(item)
    return out


@router.post("", response_model=MediaListOut, status_code=201)
async def create_list(body: MediaListIn, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await lists_repo.create_list(
        session, user.id, body.media_domain, body.title, description=body.description, is_public=body.is_public
    )


@router.get("/{list_id}", response_model=MediaListOut)
async def get_list(list_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await lists_repo.get_list(session, user.id, list_id)


@router.patch("/{list_id}", response_model=MediaListOut)
async def update_list(
    list_id: int,
    body: MediaListUpdate,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await lists_repo.update_list(session, user.id, list_id, body.model_dump(exclude_unset=True))


@router.delete("/{list_id}", status_code=204)
async def delete_list(list_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    await lists_repo.delete_list(session, user.id, list_id)
    return Response(status_code=204)


@router.get("/{list_id}/items", response_model=list[MediaListItemOut])
async def get_items(list_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await lists_repo.get_items(session, user.id, list_id)


@router.post("/{list_id}/items", response_model=MediaListItemOut, status_code=201)
async def add_item(
    list_id: int,
    body: MediaListItemIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await lists_repo.add_item(session, user.id, list_id, body.model_dump())


@router.delete("/{list_id}/items/{item_id}", status_code=204)
async def remove_item(
    list_id: int,
    item_id: int,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    await lists_repo.remove_item(session, user.id, list_id, item_id)
    return Response(status_code=204)


@router.get("/{list_id}/members", response_model=list[MemberOut])
async def get_members(list_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    rows = await lists_repo.get_members(session, user.id, list_id)
    return [MemberOut(user_id=m.user_id, display_name=name, role=m.role) for m, name in rows]


@router.get("/{list_id}/role", response_model=MyRoleOut)
async def my_role(list_id: int, user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return MyRoleOut(role=await lists_repo.get_my_role(session, user.id, list_id))


@router.post("/{list_id}/members")
async def share(
    list_id: int,
    body: ShareIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Share with connections only."""
    shared = await lists_repo.share_list(session, user.id, list_id, body.user_ids, body.role)
    return {"shared": shared}


@router.put("/{list_id}/members/{member_id}", response_model=MemberOut)
async def update_member_role(
    list_id: int,
    member_id: int,
    body: MemberRoleIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    member = await lists_repo.update_member_role(session, user.id, list_id, member_id, body.role)
    rows = await lists_repo.get_members(session, user.id, list_id)
    name = next((n for m, n in rows if m.user_id == member_id), "")
    return MemberOut(user_id=member.user_id, display_name=name, role=member.role)


@router.delete("/{list_id}/members/{member_id}", status_code=204)
async def unshare(
    list_id: int,
    member_id: int,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    await lists_repo.unshare_list(session, user.id, list_id, member_id)
    return Response(status_code=204)
