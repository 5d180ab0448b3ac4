"""Tag-addressed cache of API responses.

Each cached query declares the tags it provides. A mutation names the tags it
invalidates; matching queries with subscribers are refetched in the
background, and matching queries nobody is watching are dropped.

A collection tag (``Tag("Task")``) matches every entry that provides a tag of
that type, including per-id tags. An id tag (``Tag("Task", "42")``) matches
only entries providing exactly that tag.

Everything here runs on one event loop; no locking is needed.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueryKey = tuple[Hashable, ...]
Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Tag:
    type: str
    id: str | None = None

    def matches(self, provided: "Tag") -> bool:
        """True if invalidating ``self`` should invalidate ``provided``."""
        if self.type != provided.type:
            return False
        return self.id is None or self.id == provided.id


class QueryStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass
class CacheEntry:
    """What subscribers see for one query key."""

    key: QueryKey
    status: QueryStatus = QueryStatus.UNINITIALIZED
    data: Any = None
    error: BaseException | None = None
    fetched_at: float | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.PENDING and self.fetched_at is None

    @property
    def is_fetching(self) -> bool:
        return self.status is QueryStatus.PENDING


Listener = Callable[[CacheEntry], None]


@dataclass
class _Slot:
    entry: CacheEntry
    fetch: Fetcher
    provides: frozenset[Tag]
    listeners: list[Listener] = field(default_factory=list)
    in_flight: asyncio.Task | None = None
    background: bool = False
    stale: bool = False
    waiters: int = 0


class Subscription:
    """Handle returned by ``QueryCache.subscribe``."""

    def __init__(self, cache: "QueryCache", key: QueryKey, listener: Listener):
        self._cache = cache
        self.key = key
        self._listener = listener
        self.active = True

    @property
    def entry(self) -> CacheEntry | None:
        return self._cache.entry(self.key)

    async def settled(self) -> CacheEntry | None:
        """Wait until no fetch is in flight for this key, then return the entry."""
        await self._cache.settled(self.key)
        return self.entry

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._cache._remove_listener(self.key, self._listener)


class QueryCache:
    """Deduplicating, tag-invalidated cache of query results."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._slots: dict[QueryKey, _Slot] = {}
        self._clock = clock

    def entry(self, key: QueryKey) -> CacheEntry | None:
        slot = self._slots.get(key)
        return slot.entry if slot else None

    def keys(self) -> list[QueryKey]:
        return list(self._slots)

    def _slot(self, key: QueryKey, fetch: Fetcher, provides: Iterable[Tag]) -> _Slot:
        slot = self._slots.get(key)
        if slot is None:
            slot = _Slot(entry=CacheEntry(key=key), fetch=fetch, provides=frozenset(provides))
            self._slots[key] = slot
        else:
            slot.fetch = fetch
        return slot

    def _notify(self, slot: _Slot) -> None:
        for listener in list(slot.listeners):
            try:
                listener(slot.entry)
            except Exception:
                logger.exception("Cache listener for %r failed", slot.entry.key)

    async def _run(self, slot: _Slot, previous: asyncio.Task | None) -> Any:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        entry = slot.entry
        entry.status = QueryStatus.PENDING
        # An invalidation arriving after this point marks the result stale again.
        slot.stale = False
        self._notify(slot)
        try:
            data = await slot.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            entry.status = QueryStatus.REJECTED
            entry.error = exc
            self._notify(slot)
            raise
        else:
            entry.status = QueryStatus.FULFILLED
            entry.data = data
            entry.error = None
            entry.fetched_at = self._clock()
            self._notify(slot)
            return data
        finally:
            if slot.in_flight is asyncio.current_task():
                slot.in_flight = None
                slot.background = False

    def _start(self, slot: _Slot, *, background: bool = False) -> asyncio.Task:
        task = asyncio.create_task(self._run(slot, slot.in_flight))
        # Errors are kept on the entry; mark them retrieved for unawaited refetches.
        task.add_done_callback(lambda t: t.cancelled() or t.exception())
        slot.in_flight = task
        slot.background = background
        return task

    async def query(self, key: QueryKey, fetch: Fetcher, provides: Iterable[Tag] = ()) -> Any:
        """Return cached data for ``key`` or fetch it.

        Concurrent calls for one key share a single fetch. A failed fetch
        raises its error to every waiter and is not retried.
        """
        slot = self._slot(key, fetch, provides)
        if slot.in_flight is None and slot.entry.status is QueryStatus.FULFILLED and not slot.stale:
            return slot.entry.data
        task = slot.in_flight or self._start(slot)
        slot.waiters += 1
        try:
            return await asyncio.shield(task)
        finally:
            slot.waiters -= 1

    def subscribe(
        self,
        key: QueryKey,
        fetch: Fetcher,
        provides: Iterable[Tag],
        listener: Listener,
    ) -> Subscription:
        """Watch ``key``. Fetches if nothing usable is cached.

        Must be called from a running event loop.
        """
        slot = self._slot(key, fetch, provides)
        slot.listeners.append(listener)
        if slot.in_flight is None:
            if slot.entry.status is QueryStatus.FULFILLED and not slot.stale:
                listener(slot.entry)
            else:
                self._start(slot)
        return Subscription(self, key, listener)

    def _remove_listener(self, key: QueryKey, listener: Listener) -> None:
        slot = self._slots.get(key)
        if slot is None:
            return
        if listener in slot.listeners:
            slot.listeners.remove(listener)
        # A refetch that query() callers are waiting on runs to completion.
        if not slot.listeners and slot.background and slot.in_flight is not None and not slot.waiters:
            slot.in_flight.cancel()
            del self._slots[key]

    def invalidate(self, tags: Iterable[Tag]) -> list[asyncio.Task]:
        """Invalidate entries providing any of ``tags``.

        Returns the background refetches started for subscribed entries.
        """
        tags = list(tags)
        refetches = []
        for key, slot in list(self._slots.items()):
            if not any(tag.matches(provided) for tag in tags for provided in slot.provides):
                continue
            if slot.listeners:
                logger.debug("Refetching %r", key)
                refetches.append(self._start(slot, background=True))
            elif slot.in_flight is None:
                del self._slots[key]
            else:
                slot.stale = True
        return refetches

    async def mutate(
        self,
        run: Callable[[], Awaitable[T]],
        invalidates: Iterable[Tag] | Callable[[T], Iterable[Tag]],
    ) -> T:
        """Run a mutation; on success invalidate its tags."""
        result = await run()
        tags = invalidates(result) if callable(invalidates) else invalidates
        self.invalidate(tags)
        return result

    async def settled(self, key: QueryKey) -> None:
        """Wait for the in-flight fetch of ``key`` (and any chained refetch)."""
        while True:
            slot = self._slots.get(key)
            if slot is None or slot.in_flight is None:
                return
            await asyncio.wait([slot.in_flight])

    async def drain(self) -> None:
        """Wait until no fetch is in flight for any key."""
        while True:
            pending = [slot.in_flight for slot in self._slots.values() if slot.in_flight is not None]
            if not pending:
                return
            await asyncio.wait(pending)
