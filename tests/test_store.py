"""
Room store semantics: last-write-wins updates, copies in and out, and the
change feed.
"""

import asyncio

import pytest

from wordarena.core.database import ROOMS, InMemoryDB
from wordarena.core.errors import TransientStoreError


async def test_insert_assigns_id_and_timestamps(store):
    record = await store.insert(ROOMS, {"name": "a"})
    assert record["id"]
    assert record["created_at"] == record["updated_at"]
    assert await store.get(ROOMS, record["id"]) == record


async def test_update_replaces_top_level_fields_only(store):
    record = await store.insert(ROOMS, {"roster": {"u1": {"score": 0}}, "cursor": 0})
    updated = await store.update(ROOMS, record["id"], {"roster": {"u2": {"score": 5}}})
    assert updated["roster"] == {"u2": {"score": 5}}
    assert updated["cursor"] == 0


async def test_update_missing_record_returns_none(store):
    assert await store.update(ROOMS, "nope", {"cursor": 1}) is None


async def test_records_are_copied(store):
    source = {"roster": {"u1": {"score": 0}}}
    record = await store.insert(ROOMS, source)
    source["roster"]["u1"]["score"] = 99
    record["roster"]["u1"]["score"] = 42

    fetched = await store.get(ROOMS, record["id"])
    assert fetched["roster"]["u1"]["score"] == 0


async def test_delete_twice_is_noop(store):
    record = await store.insert(ROOMS, {})
    assert await store.delete(ROOMS, record["id"]) is True
    assert await store.delete(ROOMS, record["id"]) is False
    assert await store.get(ROOMS, record["id"]) is None


async def test_list_with_filter(store):
    await store.insert(ROOMS, {"mode": "battle"})
    await store.insert(ROOMS, {"mode": "survival"})
    battles = await store.list(ROOMS, lambda r: r["mode"] == "battle")
    assert [r["mode"] for r in battles] == ["battle"]
    assert await store.count(ROOMS) == 2


async def test_subscription_receives_events_in_order(store):
    sub = store.subscribe(ROOMS)
    record = await store.insert(ROOMS, {"cursor": 0})
    await store.update(ROOMS, record["id"], {"cursor": 1})
    await store.delete(ROOMS, record["id"])

    events = [await asyncio.wait_for(sub.get(), 1) for _ in range(3)]
    assert [e.event_type for e in events] == ["insert", "update", "delete"]
    assert events[1].record["cursor"] == 1
    sub.close()


async def test_subscription_filter(store):
    sub = store.subscribe(ROOMS, lambda r: r.get("mode") == "survival")
    await store.insert(ROOMS, {"mode": "battle"})
    survival = await store.insert(ROOMS, {"mode": "survival"})

    event = await asyncio.wait_for(sub.get(), 1)
    assert event.record["id"] == survival["id"]
    sub.close()


async def test_closed_subscription_ends_iteration(store):
    sub = store.subscribe(ROOMS)
    await store.insert(ROOMS, {})
    sub.close()

    seen = [event async for event in sub]
    assert len(seen) == 1
    assert store.subscriber_count(ROOMS) == 0


async def test_slow_subscriber_drops_oldest():
    store = InMemoryDB(subscription_queue_size=2)
    sub = store.subscribe(ROOMS)
    for i in range(3):
        await store.insert(ROOMS, {"n": i})

    first = await sub.get()
    second = await sub.get()
    assert [first.record["n"], second.record["n"]] == [1, 2]


async def test_closed_store_raises_transient_error(store):
    store.close()
    with pytest.raises(TransientStoreError):
        await store.get(ROOMS, "x")
    with pytest.raises(TransientStoreError):
        await store.insert(ROOMS, {})
    store.reopen()
    assert await store.list(ROOMS) == []
