#!/usr/bin/env python3
"""
Tests for the SQLite data store against a temporary database file.
"""

import asyncio
import os
import tempfile
from datetime import UTC, datetime, timedelta

import aiosqlite

from event_assistant.store import NewEvent, SQLiteDataStore, create_data_store
from event_assistant.store.memory_store import InMemoryDataStore


async def _insert(db_path: str, query: str, params: tuple) -> int:
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(query, params)
        await db.commit()
        return cursor.lastrowid


async def _exercise_store(db_path: str) -> None:
    store = SQLiteDataStore(db_path)

    assert await store.seed_demo_data() is True
    assert await store.seed_demo_data() is False

    # ---------- users ----------
    profile = await store.get_user_profile(1)
    assert profile.name == "Ana"
    assert profile.city == "Caracas"
    assert profile.membership == "VIP"
    assert profile.last_event_date is None
    assert await store.get_user_profile(404) is None

    # ---------- places ----------
    bars = await store.search_places("caracas", place_type="BAR")
    # same created_at, newest id first
    assert [p.name for p in bars] == ["Bar Central", "Cervecería Tovar"]

    caracas = await store.search_places("Caracas")
    assert {p.id for p in caracas} == {1, 2, 3}

    big = await store.search_places("Caracas", min_capacity=100)
    assert [p.name for p in big] == ["Restaurante Urrutia"]

    assert [p.name for p in await store.search_places("valencia")] == ["Parque Negra Hipólita"]
    assert (await store.get_place(4)).status == "PENDING"
    assert await store.get_place(404) is None

    reviews = await store.list_place_reviews(3)
    assert len(reviews) == 2
    assert {r.author_name for r in reviews} == {"Ana", "Luis"}
    assert len(await store.list_place_reviews(3, limit=1)) == 1

    # ---------- events ----------
    start = datetime.now(UTC)
    begin = (start + timedelta(days=3)).replace(microsecond=0)
    event = await store.create_event(
        NewEvent(
            name="Reunión en Cervecería Tovar",
            description="Evento creado en Cervecería Tovar",
            time_begin=begin,
            place_id=1,
            organizer_id=1,
        )
    )
    assert event.id >= 1
    assert event.place_name == "Cervecería Tovar"
    assert event.place_city == "Caracas"
    assert event.time_begin == begin
    assert event.min_age == 18

    profile = await store.get_user_profile(1)
    assert profile.last_place_name == "Cervecería Tovar"
    assert profile.last_event_date == begin

    later = begin + timedelta(hours=1)
    updated = await store.update_event(event.id, {"name": "Fiesta", "time_begin": later})
    assert updated.name == "Fiesta"
    assert updated.time_begin == later

    try:
        await store.update_event(event.id, {"organizer_id": 2})
        raise AssertionError("expected ValueError")
    except ValueError:
        pass

    window_end = start + timedelta(days=30)
    organized = await store.list_organized_events(1, start, window_end)
    assert [e.id for e in organized] == [event.id]
    assert await store.list_organized_events(2, start, window_end) == []
    assert await store.list_organized_events(1, start, start + timedelta(days=1)) == []

    # ---------- tickets and communities ----------
    ticket_id = await _insert(
        db_path, "INSERT INTO tickets (event_id, type, price, quantity) VALUES (?, ?, ?, ?)",
        (event.id, "general", 10.0, 100),
    )
    await _insert(
        db_path, "INSERT INTO bought_tickets (user_id, ticket_id, price) VALUES (?, ?, ?)",
        (2, ticket_id, 10.0),
    )
    joined = await store.list_joined_events(2, start, window_end)
    assert [e.name for e in joined] == ["Fiesta"]
    assert await store.list_joined_events(1, start, window_end) == []

    community = await store.get_community(1)
    assert community.name == "Cerveceros de Caracas"
    assert await store.get_community(404) is None

    await _insert(
        db_path,
        """
        INSERT INTO events (name, time_begin, place_id, organizer_id, community_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            "Cata de cervezas",
            (begin + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S+00:00"),
            1,
            1,
            1,
            begin.strftime("%Y-%m-%dT%H:%M:%S+00:00"),
        ),
    )

    assert await store.is_community_member(1, 2) is False
    assert await store.list_community_events(2, start, window_end) == []
    await store.add_community_member(1, 2)
    assert await store.is_community_member(1, 2) is True
    community_events = await store.list_community_events(2, start, window_end)
    assert [e.name for e in community_events] == ["Cata de cervezas"]

    await store.close()


def test_sqlite_store_end_to_end():
    print("Testing SQLite data store...")
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(_exercise_store(os.path.join(tmp, "events.db")))


def test_factory_selects_backend():
    assert isinstance(create_data_store({"type": "memory"}), InMemoryDataStore)
    sqlite_store = create_data_store({"type": "sqlite", "path": "/tmp/unused.db"})
    assert isinstance(sqlite_store, SQLiteDataStore)
    assert sqlite_store.db_path == "/tmp/unused.db"

    try:
        create_data_store({"type": "postgres"})
        raise AssertionError("expected ValueError")
    except ValueError as e:
        assert "postgres" in str(e)


if __name__ == "__main__":
    test_sqlite_store_end_to_end()
    test_factory_selects_backend()
    print("\n✅ All SQLite store tests passed!")
