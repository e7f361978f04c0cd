"""
Client-side query cache with optimistic mutations.

The cache stores server state under tuple keys (``("watchlist", "list")``).
Mutations go through ``OptimisticMutation`` which snapshots the cached value,
applies the expected effect right away, and afterwards either reconciles it
with the server response or rolls back to the snapshot. Every mutation
finishes by marking the key stale so the next read refetches.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Hashable, TypeVar

from mediashelf.core.constants import TEMP_ID_PREFIX
from mediashelf.core.exceptions import MutationError

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
V = TypeVar("V")
R = TypeVar("R")

_temp_counter = itertools.count(1)


def temp_id() -> str:
    """Temporary id for an optimistic record that the server has not created yet."""
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{next(_temp_counter)}"


def is_temp_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


def _matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix


@dataclass
class CacheEntry:
    data: Any
    updated_at: float
    stale: bool = False


@dataclass
class QueryCache:
    clock: Callable[[], float] = time.monotonic
    _entries: dict[QueryKey, CacheEntry] = field(default_factory=dict)
    _inflight: dict[QueryKey, asyncio.Task] = field(default_factory=dict)

    def get(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def has(self, key: QueryKey) -> bool:
        return key in self._entries

    def set(self, key: QueryKey, value: Any) -> Any:
        """
        Store ``value`` under ``key``. A callable receives the current value
        (or None) and returns the new one.
        """
        if callable(value):
            value = value(self.get(key))
        self._entries[key] = CacheEntry(data=value, updated_at=self.clock())
        return value

    def remove(self, key: QueryKey) -> None:
        self._entries.pop(key, None)

    def is_stale(self, key: QueryKey, stale_time: float = 0.0) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return True
        return self.clock() - entry.updated_at >= stale_time

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark every entry whose key starts with ``prefix`` as stale."""
        n = 0
        for key, entry in self._entries.items():
            if _matches(key, prefix):
                entry.stale = True
                n += 1
        return n

    def cancel(self, prefix: QueryKey) -> None:
        """Cancel in-flight fetches so they cannot overwrite an optimistic write."""
        for key, task in list(self._inflight.items()):
            if _matches(key, prefix) and not task.done():
                task.cancel()

    async def fetch(self, key: QueryKey, fn: Callable[[], Awaitable[V]], stale_time: float = 0.0) -> V:
        """
        Return cached data while it is fresh, otherwise run ``fn`` and cache its result.
        Concurrent fetches of the same key share one request.
        """
        if not self.is_stale(key, stale_time):
            return self.get(key)

        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task

        try:
            data = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # our fetch was cancelled by a mutation; serve what's cached
                return self.get(key)
            raise
        finally:
            if self._inflight.get(key) is task and task.done():
                del self._inflight[key]

        self.set(key, data)
        return data


@dataclass
class OptimisticMutation(Generic[V, R]):
    """
    Snapshot / patch / rollback around one server mutation.

    ``apply(current, variables)`` returns the optimistic value; it only runs
    when the key is already cached. ``reconcile(current, result, variables)``
    folds the server response back into the cache on success.
    """

    cache: QueryCache
    key: QueryKey
    mutation_fn: Callable[[V], Awaitable[R]]
    apply: Callable[[Any, V], Any] | None = None
    reconcile: Callable[[Any, R, V], Any] | None = None
    invalidate_on_settle: bool = True

    async def run(self, variables: V) -> R:
        self.cache.cancel(self.key)

        has_snapshot = self.cache.has(self.key)
        snapshot = copy.deepcopy(self.cache.get(self.key))

        if has_snapshot and snapshot is not None and self.apply is not None:
            self.cache.set(self.key, self.apply(copy.deepcopy(snapshot), variables))

        try:
            result = await self.mutation_fn(variables)
        except Exception as e:
            if has_snapshot:
                self.cache.set(self.key, snapshot)
            logger.warning("Mutation on %s failed, rolled back: %r", self.key, e)
            raise MutationError(
                f"Mutation on {self.key} failed: {e}",
                user_message=getattr(e, "user_message", None) or "Could not save changes",
            ) from e
        else:
            if self.reconcile is not None:
                self.cache.set(self.key, lambda current: self.reconcile(current, result, variables))
            return result
        finally:
            if self.invalidate_on_settle:
                self.cache.invalidate(self.key)
