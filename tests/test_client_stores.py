"""
Optimistic client stores running against the real app over ASGI.
"""
from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from mediashelf.client.api_client import MediaShelfClient
from mediashelf.client.stores import LibraryStore, WatchlistStore
from mediashelf.core.exceptions import (
    AuthenticationError,
    MutationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from mediashelf.core.query_cache import QueryCache, is_temp_id

FIGHT_CLUB = {"external_id": "550", "media_type": "movie", "title": "Fight Club"}
BREAKING_BAD = {"external_id": "1396", "media_type": "tv", "title": "Breaking Bad"}


@pytest_asyncio.fixture()
async def client(app, make_invite):
    invite = await make_invite()
    async with MediaShelfClient("http://test", transport=httpx.ASGITransport(app=app)) as c:
        await c.sign_up("reader@example.com", "password123", invite.code, display_name="Reader")
        yield c


@pytest.fixture()
def watchlist(client):
    return WatchlistStore(client, QueryCache())


@pytest.mark.asyncio
async def test_client_maps_errors(app):
    async with MediaShelfClient("http://test", transport=httpx.ASGITransport(app=app)) as anonymous:
        with pytest.raises(AuthenticationError):
            await anonymous.me()


@pytest.mark.asyncio
async def test_client_session(client):
    me = await client.me()
    assert me["email"] == "reader@example.com"
    with pytest.raises(NotFoundError):
        await client.toggle_watched(12345)


@pytest.mark.asyncio
async def test_list_is_cached(watchlist, client):
    assert await watchlist.list() == []
    await client.add_to_watchlist(FIGHT_CLUB)

    # still fresh, so no refetch
    assert await watchlist.list() == []

    watchlist.cache.invalidate(WatchlistStore.KEY)
    assert [i["external_id"] for i in await watchlist.list()] == ["550"]


@pytest.mark.asyncio
async def test_add_shows_temp_item_then_server_item(watchlist, client, monkeypatch):
    await watchlist.list()
    during = []
    real_add = client.add_to_watchlist

    async def spy(data):
        during.append(watchlist.items)
        return await real_add(data)

    monkeypatch.setattr(client, "add_to_watchlist", spy)

    created = await watchlist.add(FIGHT_CLUB)

    assert len(during[0]) == 1
    assert is_temp_id(during[0][0]["id"])
    assert during[0][0]["title"] == "Fight Club"
    assert watchlist.items == [created]
    assert isinstance(created["id"], int)
    assert watchlist.cache.is_stale(WatchlistStore.KEY)


@pytest.mark.asyncio
async def test_failed_add_rolls_back(watchlist):
    await watchlist.add(FIGHT_CLUB)
    before = await watchlist.list()

    with pytest.raises(MutationError) as exc_info:
        await watchlist.add(FIGHT_CLUB)

    assert exc_info.value.user_message == "Already in your watchlist"
    assert isinstance(exc_info.value.__cause__, ValidationError)
    assert watchlist.items == before


@pytest.mark.asyncio
async def test_toggle_and_notes(watchlist, client, monkeypatch):
    item = await watchlist.add(FIGHT_CLUB)
    await watchlist.list()
    during = []
    real_toggle = client.toggle_watched

    async def spy(item_id):
        during.append(watchlist.items[0]["watched"])
        return await real_toggle(item_id)

    monkeypatch.setattr(client, "toggle_watched", spy)

    toggled = await watchlist.toggle_watched(item["id"])
    assert during == [True]
    assert toggled["watched"] is True
    assert watchlist.items[0]["watched_at"] == toggled["watched_at"]

    await watchlist.list()
    updated = await watchlist.update_notes(item["id"], "with Sam")
    assert updated["notes"] == "with Sam"
    assert watchlist.items[0]["notes"] == "with Sam"
    # notes are folded in without marking the list stale
    assert not watchlist.cache.is_stale(WatchlistStore.KEY, stale_time=60)


@pytest.mark.asyncio
async def test_delete(watchlist):
    first = await watchlist.add(FIGHT_CLUB)
    await watchlist.add(BREAKING_BAD)
    await watchlist.list()

    await watchlist.delete(first["id"])
    assert [i["external_id"] for i in watchlist.items] == ["1396"]

    assert await watchlist.is_in_watchlist("1396")
    assert not await watchlist.is_in_watchlist("550")


@pytest.mark.asyncio
async def test_failed_delete_restores_the_item(watchlist, client, monkeypatch):
    first = await watchlist.add(FIGHT_CLUB)
    second = await watchlist.add(BREAKING_BAD)
    before = await watchlist.list()
    assert {i["id"] for i in before} == {first["id"], second["id"]}
    during = []

    async def refuse(item_id):
        during.append([i["id"] for i in watchlist.items])
        raise PermissionDeniedError(f"delete {item_id} refused", user_message="Not allowed")

    monkeypatch.setattr(client, "delete_from_watchlist", refuse)

    with pytest.raises(MutationError) as exc_info:
        await watchlist.delete(second["id"])

    # gone while the request was in flight, back once it failed
    assert during == [[first["id"]]]
    assert exc_info.value.user_message == "Not allowed"
    assert isinstance(exc_info.value.__cause__, PermissionDeniedError)
    assert watchlist.items == before

    # the server still has both
    assert await watchlist.is_in_watchlist("1396")
    assert await watchlist.is_in_watchlist("550")


@pytest.mark.asyncio
async def test_mutation_without_cached_list(watchlist):
    created = await watchlist.add(FIGHT_CLUB)
    # nothing was cached, so the server item becomes the list
    assert watchlist.items == [created]


@pytest.mark.asyncio
async def test_library_store(client):
    books = LibraryStore(client, QueryCache(), "book")
    await books.list()

    entry = await books.add({"external_id": "B00B7NPRY8", "title": "Dune"})
    assert entry["status"] == "to-read"

    await books.list()
    entry = await books.set_status(entry["id"], "read")
    assert entry["done"] is True
    assert books.items[0]["done"] is True

    entry = await books.toggle_done(entry["id"])
    assert (entry["status"], entry["done"]) == ("to-read", False)

    await books.list()
    before = list(books.items)
    with pytest.raises(MutationError):
        await books.set_status(entry["id"], "played")
    assert books.items == before

    entry = await books.update(entry["id"], {"personal_rating": 4, "status": "reading"})
    assert (entry["personal_rating"], entry["status"]) == (4, "reading")

    await books.delete(entry["id"])
    assert books.items == []

    # another domain keeps its own cache key
    games = LibraryStore(client, books.cache, "game")
    assert await games.list() == []
    assert games.key != books.key


def test_library_store_rejects_unknown_domain():
    with pytest.raises(ValidationError):
        LibraryStore(None, QueryCache(), "podcast")
