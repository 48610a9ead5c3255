from __future__ import annotations

import time

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Message
from app.monitoring.metrics import store_failures_total
from app.services import BlocklistStore, MessageStore, RetentionSweeper, StoreUnavailable
from conftest import make_message

DAY_MS = 24 * 60 * 60 * 1000


def _unreachable_session():
    raise OperationalError("SELECT 1", {}, ConnectionError("database is down"))


@pytest.mark.anyio("asyncio")
async def test_recent_returns_newest_messages_in_chronological_order(message_store: MessageStore):
    for message_id, ts in [("c", 3_000), ("a", 1_000), ("d", 4_000), ("b", 2_000)]:
        await message_store.insert(make_message(message_id, ts))

    everything = await message_store.recent(30)
    assert [message.id for message in everything] == ["a", "b", "c", "d"]

    newest = await message_store.recent(2)
    assert [message.id for message in newest] == ["c", "d"]
    assert [message.ts for message in newest] == sorted(message.ts for message in newest)


@pytest.mark.anyio("asyncio")
async def test_recent_with_non_positive_limit_is_empty(message_store: MessageStore):
    await message_store.insert(make_message("a", 1_000))
    assert await message_store.recent(0) == []


@pytest.mark.anyio("asyncio")
async def test_insert_round_trips_display_metadata(message_store: MessageStore):
    await message_store.insert(make_message("m1", 10, user_color="#ff00aa", user_status="away"))

    [stored] = await message_store.recent(1)
    assert stored.user_color == "#ff00aa"
    assert stored.user_status == "away"
    assert stored.reactions == {}
    assert stored.to_payload()["userColor"] == "#ff00aa"


@pytest.mark.anyio("asyncio")
async def test_update_reactions_replaces_the_whole_map(message_store: MessageStore, db_session):
    await message_store.insert(make_message("m1", 10, reactions={"👍": 3}))

    await message_store.update_reactions("m1", {"🔥": 1})

    row = db_session.get(Message, "m1")
    assert row.reactions == {"🔥": 1}


@pytest.mark.anyio("asyncio")
async def test_delete_is_idempotent(message_store: MessageStore):
    await message_store.insert(make_message("m1", 10))

    assert await message_store.delete("m1") is True
    assert await message_store.delete("m1") is False
    assert await message_store.delete("never-existed") is False
    assert await message_store.recent(10) == []


@pytest.mark.anyio("asyncio")
async def test_purge_removes_only_messages_past_the_retention_window(message_store: MessageStore):
    now = int(time.time() * 1000)
    await message_store.insert(make_message("old", now - 8 * DAY_MS))
    await message_store.insert(make_message("recent", now - 6 * DAY_MS))

    sweeper = RetentionSweeper(message_store, retention_ms=7 * DAY_MS, interval_seconds=3600)
    assert await sweeper.run_once(now) == 1

    remaining = await message_store.recent(30)
    assert [message.id for message in remaining] == ["recent"]
    assert await message_store.purge_older_than(now - 7 * DAY_MS) == 0


@pytest.mark.anyio("asyncio")
async def test_unreachable_database_raises_store_unavailable():
    store_failures_total.clear()
    store = MessageStore(_unreachable_session)

    with pytest.raises(StoreUnavailable) as excinfo:
        await store.insert(make_message("m1", 10))

    assert excinfo.value.operation == "insert"
    assert store_failures_total.value("insert") == 1.0


@pytest.mark.anyio("asyncio")
async def test_blocklist_lifecycle(blocklist_store: BlocklistStore):
    assert await blocklist_store.is_blocked("203.0.113.5") is False

    await blocklist_store.add("203.0.113.5", "spam")
    await blocklist_store.add("203.0.113.5", "duplicate is ignored")
    await blocklist_store.add("198.51.100.7")

    assert await blocklist_store.is_blocked("203.0.113.5") is True
    entries = {entry.ip: entry for entry in await blocklist_store.list_blocked()}
    assert set(entries) == {"203.0.113.5", "198.51.100.7"}
    assert entries["203.0.113.5"].reason == "spam"
    assert entries["198.51.100.7"].reason == "Blocked by admin"

    assert await blocklist_store.remove("203.0.113.5") is True
    assert await blocklist_store.remove("203.0.113.5") is False
    assert await blocklist_store.is_blocked("203.0.113.5") is False
