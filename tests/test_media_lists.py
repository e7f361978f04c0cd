"""
Media lists: ownership, sharing with connections and visibility.
"""
from __future__ import annotations

import pytest
from sqlalchemy import func, select

from mediashelf.core.constants import LIST_ROLE_EDITOR, LIST_ROLE_OWNER, LIST_ROLE_VIEWER
from mediashelf.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from mediashelf.db.models import MediaListItem, MediaListMember
from mediashelf.db.repositories import connections as connections_repo
from mediashelf.db.repositories import media_lists as lists_repo

FIGHT_CLUB = {"external_id": "550", "media_type": "movie", "title": "Fight Club", "release_date": "1999-10-15"}
BREAKING_BAD = {"external_id": "1396", "media_type": "tv", "title": "Breaking Bad", "year": 2008}


@pytest.fixture()
def crew(session, make_user):
    """Owner with two connections and one stranger."""

    async def _make():
        owner = await make_user("Owner")
        friend = await make_user("Friend")
        other_friend = await make_user("Other Friend")
        stranger = await make_user("Stranger")
        await connections_repo.connect(session, owner.id, friend.id)
        await connections_repo.connect(session, owner.id, other_friend.id)
        return owner.id, friend.id, other_friend.id, stranger.id

    return _make


@pytest.mark.asyncio
async def test_create_and_list_with_counts(session, crew):
    owner, *_ = await crew()
    movies = await lists_repo.create_list(session, owner, "movies-tv", "  Friday nights ", description="   ")
    books = await lists_repo.create_list(session, owner, "books", "Summer reading")
    assert movies.title == "Friday nights"
    assert movies.description is None
    assert movies.is_public is False

    await lists_repo.add_item(session, owner, movies.id, FIGHT_CLUB)
    item = await lists_repo.add_item(session, owner, movies.id, BREAKING_BAD)
    assert item.year == 2008
    assert item.added_by == owner

    counts = {ml.id: n for ml, n in await lists_repo.get_lists(session, owner)}
    assert counts == {movies.id: 2, books.id: 0}

    only_books = await lists_repo.get_lists(session, owner, domain="books")
    assert [ml.id for ml, _ in only_books] == [books.id]

    with pytest.raises(ValidationError):
        await lists_repo.create_list(session, owner, "podcasts", "Nope")
    with pytest.raises(ValidationError):
        await lists_repo.create_list(session, owner, "books", "   ")


@pytest.mark.asyncio
async def test_items_newest_first_and_unique(session, crew):
    owner, *_ = await crew()
    ml = await lists_repo.create_list(session, owner, "movies-tv", "Watch")
    first = await lists_repo.add_item(session, owner, ml.id, FIGHT_CLUB)
    second = await lists_repo.add_item(session, owner, ml.id, BREAKING_BAD)
    assert first.year == 1999

    list_id, second_id = ml.id, second.id

    items = await lists_repo.get_items(session, owner, list_id)
    assert [i.id for i in items] == [second_id, first.id]

    with pytest.raises(ValidationError):
        await lists_repo.add_item(session, owner, list_id, FIGHT_CLUB)

    # the failed insert rolled back, so only use plain ids from here on
    await lists_repo.remove_item(session, owner, list_id, second_id)
    assert [i.external_id for i in await lists_repo.get_items(session, owner, list_id)] == ["550"]
    with pytest.raises(NotFoundError):
        await lists_repo.remove_item(session, owner, list_id, second_id)


@pytest.mark.asyncio
async def test_private_lists_are_hidden(session, crew):
    owner, _, _, stranger = await crew()
    ml = await lists_repo.create_list(session, owner, "movies-tv", "Secret")

    with pytest.raises(NotFoundError):
        await lists_repo.get_list(session, stranger, ml.id)
    assert await lists_repo.get_my_role(session, stranger, ml.id) is None

    await lists_repo.update_list(session, owner, ml.id, {"is_public": True})
    assert (await lists_repo.get_list(session, stranger, ml.id)).id == ml.id
    # public means readable, not editable
    with pytest.raises(PermissionDeniedError):
        await lists_repo.add_item(session, stranger, ml.id, FIGHT_CLUB)


@pytest.mark.asyncio
async def test_sharing_roles(session, crew):
    owner, friend, other_friend, stranger = await crew()
    ml = await lists_repo.create_list(session, owner, "movies-tv", "Shared")

    assert await lists_repo.share_list(session, owner, ml.id, [friend, friend, owner], LIST_ROLE_VIEWER) == 1
    assert await lists_repo.share_list(session, owner, ml.id, [other_friend], LIST_ROLE_EDITOR) == 1

    assert await lists_repo.get_my_role(session, owner, ml.id) == LIST_ROLE_OWNER
    assert await lists_repo.get_my_role(session, friend, ml.id) == LIST_ROLE_VIEWER
    assert await lists_repo.get_my_role(session, other_friend, ml.id) == LIST_ROLE_EDITOR

    # shared lists show up for members
    assert [m.id for m, _ in await lists_repo.get_lists(session, friend)] == [ml.id]

    await lists_repo.add_item(session, other_friend, ml.id, FIGHT_CLUB)
    with pytest.raises(PermissionDeniedError):
        await lists_repo.add_item(session, friend, ml.id, BREAKING_BAD)
    with pytest.raises(PermissionDeniedError):
        await lists_repo.update_list(session, other_friend, ml.id, {"title": "Mine now"})

    # re-sharing changes the role
    await lists_repo.share_list(session, owner, ml.id, [friend], LIST_ROLE_EDITOR)
    assert await lists_repo.get_my_role(session, friend, ml.id) == LIST_ROLE_EDITOR

    members = await lists_repo.get_members(session, owner, ml.id)
    assert [(name, m.role) for m, name in members] == [("Friend", LIST_ROLE_EDITOR), ("Other Friend", LIST_ROLE_EDITOR)]

    with pytest.raises(PermissionDeniedError):
        await lists_repo.share_list(session, owner, ml.id, [friend, stranger], LIST_ROLE_VIEWER)
    with pytest.raises(ValidationError):
        await lists_repo.share_list(session, owner, ml.id, [friend], LIST_ROLE_OWNER)
    assert await lists_repo.get_my_role(session, stranger, ml.id) is None


@pytest.mark.asyncio
async def test_member_role_update_and_unshare(session, crew):
    owner, friend, other_friend, _ = await crew()
    ml = await lists_repo.create_list(session, owner, "music", "Road trip")
    await lists_repo.share_list(session, owner, ml.id, [friend, other_friend], LIST_ROLE_VIEWER)

    member = await lists_repo.update_member_role(session, owner, ml.id, friend, LIST_ROLE_EDITOR)
    assert member.role == LIST_ROLE_EDITOR
    with pytest.raises(PermissionDeniedError):
        await lists_repo.update_member_role(session, friend, ml.id, other_friend, LIST_ROLE_EDITOR)

    # members can leave, but cannot remove each other
    with pytest.raises(PermissionDeniedError):
        await lists_repo.unshare_list(session, friend, ml.id, other_friend)
    await lists_repo.unshare_list(session, other_friend, ml.id, other_friend)
    await lists_repo.unshare_list(session, owner, ml.id, friend)

    assert await lists_repo.get_members(session, owner, ml.id) == []
    with pytest.raises(NotFoundError):
        await lists_repo.unshare_list(session, owner, ml.id, friend)


@pytest.mark.asyncio
async def test_delete_list_removes_items_and_members(session, crew):
    owner, friend, *_ = await crew()
    ml = await lists_repo.create_list(session, owner, "movies-tv", "Temporary")
    await lists_repo.add_item(session, owner, ml.id, FIGHT_CLUB)
    await lists_repo.share_list(session, owner, ml.id, [friend], LIST_ROLE_EDITOR)

    with pytest.raises(PermissionDeniedError):
        await lists_repo.delete_list(session, friend, ml.id)

    await lists_repo.delete_list(session, owner, ml.id)

    with pytest.raises(NotFoundError):
        await lists_repo.get_list(session, owner, ml.id)
    assert (await session.execute(select(func.count()).select_from(MediaListItem))).scalar_one() == 0
    assert (await session.execute(select(func.count()).select_from(MediaListMember))).scalar_one() == 0
