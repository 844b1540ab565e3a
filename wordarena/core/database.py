"""
database.py — In-Memory Room Store
===================================
Shared record store with per-collection change feeds.

Semantics every caller relies on:
- update() replaces only the named top-level fields; nested values
  (the roster mapping, the prompt list) are replaced wholesale.
- There are no transactions and no concurrency tokens: the last write wins.
- Every write is pushed to matching subscribers after it is applied,
  in the order the writes were received.
- Records are copied on the way in and out; nobody shares a mutable
  structure with the store.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from wordarena.core.errors import TransientStoreError

logger = logging.getLogger(__name__)

EventType = Literal["insert", "update", "delete"]
RecordFilter = Callable[[dict], bool]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ChangeEvent:
    """One change-feed notification."""
    event_type: EventType
    record: dict


class Subscription:
    """
    Long-lived push channel for one collection.

    Iterate it (async for) or await get(). Must be closed on teardown,
    otherwise the store keeps queueing events for it.
    """

    def __init__(self, store: "InMemoryDB", collection: str, filter_fn: RecordFilter | None, maxsize: int):
        self._store = store
        self.collection = collection
        self.filter_fn = filter_fn
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._loop = asyncio.get_running_loop()
        self.closed = False

    def matches(self, record: dict) -> bool:
        return self.filter_fn is None or bool(self.filter_fn(record))

    def _deliver(self, event: ChangeEvent | None) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            # Slow consumer: drop the oldest, the newest value is what matters
            self._queue.get_nowait()
            self._queue.put_nowait(event)
            logger.warning(f"Subscription on {self.collection} overflowed, dropped oldest event")

    def push(self, event: ChangeEvent | None) -> None:
        if self.closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._deliver(event)
        else:
            try:
                self._loop.call_soon_threadsafe(self._deliver, event)
            except RuntimeError:
                # Owning loop is gone; nobody can read this channel any more
                self.closed = True
                self._store._unsubscribe(self)

    async def get(self) -> ChangeEvent | None:
        """Next event, or None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def close(self) -> None:
        if self.closed:
            return
        self._store._unsubscribe(self)
        self.push(None)
        self.closed = True


class InMemoryDB:
    """Thread-safe in-memory record store with collections and change feeds."""

    def __init__(self, subscription_queue_size: int = 256):
        self._lock = threading.Lock()
        self._collections: dict[str, dict[str, dict]] = {}
        self._subscribers: list[Subscription] = []
        self._queue_size = subscription_queue_size
        self._closed = False

    # ── Internals ────────────────────────────────────

    def _check_open(self) -> None:
        if self._closed:
            raise TransientStoreError("Room store is not available")

    def _publish(self, collection: str, event: ChangeEvent) -> None:
        for sub in list(self._subscribers):
            if sub.collection == collection and sub.matches(event.record):
                sub.push(ChangeEvent(event.event_type, copy.deepcopy(event.record)))

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    # ── Collection CRUD ──────────────────────────────

    async def insert(self, collection: str, record: dict) -> dict:
        """Store a new record under a fresh id and return it."""
        self._check_open()
        with self._lock:
            coll = self._collections.setdefault(collection, {})
            record_id = uuid.uuid4().hex
            while record_id in coll:
                record_id = uuid.uuid4().hex
            now = _now()
            stored = {
                **copy.deepcopy(record),
                "id": record_id,
                "created_at": now,
                "updated_at": now,
            }
            coll[record_id] = stored
            result = copy.deepcopy(stored)
        self._publish(collection, ChangeEvent("insert", result))
        return copy.deepcopy(result)

    async def get(self, collection: str, id: str) -> dict | None:
        self._check_open()
        with self._lock:
            record = self._collections.get(collection, {}).get(id)
            return copy.deepcopy(record) if record is not None else None

    async def update(self, collection: str, id: str, fields: dict) -> dict | None:
        """Replace the named top-level fields. None if the record is gone."""
        self._check_open()
        with self._lock:
            coll = self._collections.get(collection, {})
            if id not in coll:
                return None
            updated = {
                **coll[id],
                **copy.deepcopy(fields),
                "id": id,
                "updated_at": _now(),
            }
            coll[id] = updated
            result = copy.deepcopy(updated)
        self._publish(collection, ChangeEvent("update", result))
        return copy.deepcopy(result)

    async def delete(self, collection: str, id: str) -> bool:
        """Hard delete. Deleting a missing record is a no-op."""
        self._check_open()
        with self._lock:
            coll = self._collections.get(collection, {})
            record = coll.pop(id, None)
        if record is None:
            return False
        self._publish(collection, ChangeEvent("delete", record))
        return True

    async def list(self, collection: str, filter_fn: RecordFilter | None = None) -> list[dict]:
        self._check_open()
        with self._lock:
            records = [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]
        if filter_fn:
            records = [r for r in records if filter_fn(r)]
        return records

    async def count(self, collection: str) -> int:
        self._check_open()
        with self._lock:
            return len(self._collections.get(collection, {}))

    # ── Change feed ──────────────────────────────────

    def subscribe(self, collection: str, filter_fn: RecordFilter | None = None) -> Subscription:
        """Open a push channel. Must be called from inside a running loop."""
        self._check_open()
        sub = Subscription(self, collection, filter_fn, self._queue_size)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def subscriber_count(self, collection: str | None = None) -> int:
        with self._lock:
            return sum(1 for s in self._subscribers if collection is None or s.collection == collection)

    # ── Lifecycle ────────────────────────────────────

    def clear(self, collection: str | None = None) -> None:
        """Empty one collection, or reset the whole store."""
        with self._lock:
            if collection:
                self._collections.pop(collection, None)
            else:
                self._collections.clear()

    def close(self) -> None:
        """Shut the store down. Every later call raises TransientStoreError."""
        self._closed = True
        for sub in list(self._subscribers):
            sub.close()

    def reopen(self) -> None:
        self._closed = False


def init_memory_db(queue_size: int = 256) -> InMemoryDB:
    """Replace the singleton with a fresh, empty store."""
    global db
    db = InMemoryDB(subscription_queue_size=queue_size)
    return db


def get_db() -> InMemoryDB:
    return db


# ── Singleton Instance ───────────────────────────────

db = InMemoryDB()


# ── Collection names ─────────────────────────────────

ROOMS = "rooms"
