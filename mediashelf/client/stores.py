"""
Cached, optimistically updated views of the user's watchlist and libraries.

Each write patches the cached list immediately, then replaces the patch with
the server's answer, or restores the previous list if the server refuses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from mediashelf.client.api_client import MediaShelfClient
from mediashelf.core.constants import LIBRARY_STALE_SECONDS, LIBRARY_STATUSES, WATCHLIST_STALE_SECONDS
from mediashelf.core.query_cache import OptimisticMutation, QueryCache, is_temp_id, temp_id
from mediashelf.core.validation import validate_domain

Items = list[dict[str, Any]]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _replace(items: Items | None, item: dict[str, Any]) -> Items:
    if items is None:
        return [item]
    return [item if i.get("id") == item.get("id") else i for i in items]


def _without(items: Items | None, item_id: Any) -> Items:
    if items is None:
        return []
    return [i for i in items if i.get("id") != item_id]


def _prepend_server_item(items: Items | None, item: dict[str, Any]) -> Items:
    if items is None:
        return [item]
    return [item, *(i for i in items if not is_temp_id(i.get("id")))]


class WatchlistStore:
    KEY = ("watchlist", "list")

    def __init__(self, client: MediaShelfClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    @property
    def items(self) -> Items | None:
        return self.cache.get(self.KEY)

    async def list(self) -> Items:
        return await self.cache.fetch(self.KEY, self.client.get_watchlist, stale_time=WATCHLIST_STALE_SECONDS)

    async def add(self, data: dict[str, Any]) -> dict[str, Any]:
        now = _now_iso()
        optimistic = {
            "id": temp_id(),
            "poster_url": None,
            "release_date": None,
            "overview": None,
            "director": None,
            "cast_members": None,
            "genres": None,
            "vote_average": None,
            "vote_count": None,
            "runtime": None,
            "notes": None,
            **data,
            "watched": False,
            "watched_at": None,
            "list_order": None,
            "added_at": now,
            "updated_at": now,
        }
        mutation = OptimisticMutation(
            self.cache,
            self.KEY,
            mutation_fn=self.client.add_to_watchlist,
            apply=lambda items, _: [optimistic, *items],
            reconcile=lambda items, result, _: _prepend_server_item(items, result),
        )
        return await mutation.run(data)

    async def toggle_watched(self, item_id: int) -> dict[str, Any]:
        def apply(items: Items, id_: int) -> Items:
            out = []
            for i in items:
                if i.get("id") == id_:
                    watched = not i.get("watched")
                    i = {**i, "watched": watched, "watched_at": _now_iso() if watched else None}
                out.append(i)
            return out

        mutation = OptimisticMutation(
            self.cache,
            self.KEY,
            mutation_fn=self.client.toggle_watched,
            apply=apply,
            reconcile=lambda items, result, _: _replace(items, result),
        )
        return await mutation.run(item_id)

    async def update_notes(self, item_id: int, notes: str | None) -> dict[str, Any]:
        # no refetch afterwards; the server answer is folded in directly
        mutation = OptimisticMutation(
            self.cache,
            self.KEY,
            mutation_fn=lambda v: self.client.update_watchlist_notes(*v),
            apply=lambda items, v: [{**i, "notes": v[1]} if i.get("id") == v[0] else i for i in items],
            reconcile=lambda items, result, _: _replace(items, result),
            invalidate_on_settle=False,
        )
        return await mutation.run((item_id, notes))

    async def delete(self, item_id: int) -> None:
        mutation = OptimisticMutation(
            self.cache,
            self.KEY,
            mutation_fn=self.client.delete_from_watchlist,
            apply=lambda items, id_: _without(items, id_),
            reconcile=lambda items, _, id_: _without(items, id_),
        )
        await mutation.run(item_id)

    async def is_in_watchlist(self, external_id: str) -> bool:
        key = ("watchlist", "check", external_id)
        return await self.cache.fetch(
            key,
            lambda: self.client.is_in_watchlist(external_id),
            stale_time=WATCHLIST_STALE_SECONDS,
        )


class LibraryStore:
    """Same optimistic pattern for one library domain (book / game / music)."""

    def __init__(self, client: MediaShelfClient, cache: QueryCache, domain: str):
        self.client = client
        self.cache = cache
        self.domain = validate_domain(domain)
        self.key = ("library", domain, "list")

    @property
    def items(self) -> Items | None:
        return self.cache.get(self.key)

    def _set_status(self, item: dict[str, Any], status: str) -> dict[str, Any]:
        done = status == LIBRARY_STATUSES[self.domain][-1]
        done_at = item.get("done_at") if done and item.get("done") else (_now_iso() if done else None)
        return {**item, "status": status, "done": done, "done_at": done_at}

    async def list(self) -> Items:
        return await self.cache.fetch(self.key, lambda: self.client.get_library(self.domain), stale_time=LIBRARY_STALE_SECONDS)

    async def add(self, data: dict[str, Any]) -> dict[str, Any]:
        now = _now_iso()
        optimistic = self._set_status(
            {
                "id": temp_id(),
                "domain": self.domain,
                "creator": None,
                "media_type": None,
                "release_date": None,
                "poster_url": None,
                "genres": None,
                "personal_rating": None,
                "notes": None,
                "extra": {},
                **data,
                "done": False,
                "done_at": None,
                "created_at": now,
                "updated_at": now,
            },
            data.get("status") or LIBRARY_STATUSES[self.domain][0],
        )
        mutation = OptimisticMutation(
            self.cache,
            self.key,
            mutation_fn=lambda v: self.client.add_to_library(self.domain, v),
            apply=lambda items, _: [optimistic, *items],
            reconcile=lambda items, result, _: _prepend_server_item(items, result),
        )
        return await mutation.run(data)

    async def set_status(self, entry_id: int, status: str) -> dict[str, Any]:
        mutation = OptimisticMutation(
            self.cache,
            self.key,
            mutation_fn=lambda v: self.client.set_library_status(self.domain, *v),
            apply=lambda items, v: [self._set_status(i, v[1]) if i.get("id") == v[0] else i for i in items],
            reconcile=lambda items, result, _: _replace(items, result),
        )
        return await mutation.run((entry_id, status))

    async def toggle_done(self, entry_id: int) -> dict[str, Any]:
        backlog, *_, done = LIBRARY_STATUSES[self.domain]

        def apply(items: Items, id_: int) -> Items:
            return [self._set_status(i, backlog if i.get("done") else done) if i.get("id") == id_ else i for i in items]

        mutation = OptimisticMutation(
            self.cache,
            self.key,
            mutation_fn=lambda id_: self.client.toggle_library_done(self.domain, id_),
            apply=apply,
            reconcile=lambda items, result, _: _replace(items, result),
        )
        return await mutation.run(entry_id)

    async def update(self, entry_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        def apply(items: Items, v: tuple[int, dict[str, Any]]) -> Items:
            id_, changes = v
            out = []
            for i in items:
                if i.get("id") == id_:
                    i = {**i, **changes}
                    if "status" in changes:
                        i = self._set_status(i, changes["status"])
                out.append(i)
            return out

        mutation = OptimisticMutation(
            self.cache,
            self.key,
            mutation_fn=lambda v: self.client.update_library_entry(self.domain, *v),
            apply=apply,
            reconcile=lambda items, result, _: _replace(items, result),
        )
        return await mutation.run((entry_id, updates))

    async def delete(self, entry_id: int) -> None:
        mutation = OptimisticMutation(
            self.cache,
            self.key,
            mutation_fn=lambda id_: self.client.delete_library_entry(self.domain, id_),
            apply=lambda items, id_: _without(items, id_),
            reconcile=lambda items, _, id_: _without(items, id_),
        )
        await mutation.run(entry_id)
