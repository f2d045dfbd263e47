#!/usr/bin/env python3
"""
SQLite Domain Store Implementation

aiosqlite-backed storage for users, places, events, reviews and communities.

CONFIG: data_store.type = "sqlite", data_store.path = "events.db"
PURPOSE: Local deployments and demos
FEATURES: Schema auto-creation, WAL mode, optional demo seed data
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from .models import (
    Community,
    CommunityMember,
    Event,
    NewEvent,
    Place,
    Review,
    UserProfile,
)

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = """
    e.id, e.name, e.description, e.time_begin, e.time_end, e.place_id,
    e.organizer_id, e.community_id, e.min_age, e.status, e.created_at,
    p.name AS place_name, p.city AS place_city
"""

_UPDATABLE_EVENT_COLUMNS = {"name", "description", "time_begin", "time_end"}


def _ts(value: datetime) -> str:
    """Fixed-width UTC text so SQL comparisons order correctly."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteDataStore:
    """SQLite storage - configure with type='sqlite'."""

    def __init__(self, db_path: str = "events.db"):
        self.db_path = db_path
        self._lock = asyncio.Lock()
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Initialize database schema if not already done."""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute("PRAGMA synchronous=NORMAL")
                await db.execute("PRAGMA foreign_keys=ON")

                await db.executescript("""
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY,
                        name TEXT,
                        last_name TEXT,
                        city TEXT,
                        role TEXT NOT NULL DEFAULT 'CLIENT',
                        membership TEXT DEFAULT 'NORMAL'
                    );

                    CREATE TABLE IF NOT EXISTS places (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        direction TEXT,
                        city TEXT NOT NULL,
                        country TEXT,
                        capacity INTEGER NOT NULL DEFAULT 0,
                        type TEXT,
                        status TEXT NOT NULL DEFAULT 'PENDING',
                        description TEXT,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS communities (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT,
                        created_by INTEGER REFERENCES users(id)
                    );

                    CREATE TABLE IF NOT EXISTS events (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        description TEXT,
                        time_begin TEXT NOT NULL,
                        time_end TEXT,
                        place_id INTEGER NOT NULL REFERENCES places(id),
                        organizer_id INTEGER NOT NULL,
                        community_id INTEGER REFERENCES communities(id),
                        min_age INTEGER NOT NULL DEFAULT 18,
                        status TEXT NOT NULL DEFAULT 'proximo',
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS reviews (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id INTEGER NOT NULL,
                        event_id INTEGER REFERENCES events(id),
                        place_id INTEGER REFERENCES places(id),
                        calification INTEGER NOT NULL,
                        comment TEXT,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS community_members (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id INTEGER NOT NULL,
                        community_id INTEGER NOT NULL REFERENCES communities(id),
                        role TEXT NOT NULL DEFAULT 'MEMBER',
                        created_at TEXT NOT NULL,
                        exit_at TEXT
                    );

                    CREATE TABLE IF NOT EXISTS tickets (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        event_id INTEGER NOT NULL REFERENCES events(id),
                        type TEXT,
                        price REAL NOT NULL DEFAULT 0,
                        quantity INTEGER NOT NULL DEFAULT 0
                    );

                    CREATE TABLE IF NOT EXISTS bought_tickets (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id INTEGER NOT NULL,
                        ticket_id INTEGER NOT NULL REFERENCES tickets(id),
                        price REAL NOT NULL DEFAULT 0
                    );

                    CREATE INDEX IF NOT EXISTS idx_places_city ON places(city);
                    CREATE INDEX IF NOT EXISTS idx_events_organizer
                        ON events(organizer_id, time_begin);
                    CREATE INDEX IF NOT EXISTS idx_events_community
                        ON events(community_id, time_begin);
                """)
                await db.commit()

            self._initialized = True
            logger.info("SQLite data store ready at %s", self.db_path)

    async def _fetch_all(self, query: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
                return [dict(row) for row in rows]

    async def _fetch_one(self, query: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
        rows = await self._fetch_all(query, params)
        return rows[0] if rows else None

    async def _execute(self, query: str, params: tuple[Any, ...] = ()) -> int:
        """Run a write statement and return lastrowid."""
        await self._ensure_initialized()
        async with self._lock, aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA foreign_keys=ON")
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.lastrowid or 0

    # ---------- Row conversion ----------

    def _place(self, row: dict[str, Any]) -> Place:
        return Place(**{**row, "created_at": _parse_ts(row["created_at"])})

    def _event(self, row: dict[str, Any]) -> Event:
        return Event(
            **{
                **row,
                "time_begin": _parse_ts(row["time_begin"]),
                "time_end": _parse_ts(row["time_end"]),
                "created_at": _parse_ts(row["created_at"]),
            }
        )

    # ---------- DataStore protocol ----------

    async def get_user_profile(self, user_id: int) -> UserProfile | None:
        user = await self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        if user is None:
            return None

        latest = await self._fetch_one(
            """
            SELECT e.time_begin, p.name AS place_name
            FROM events e JOIN places p ON p.id = e.place_id
            WHERE e.organizer_id = ?
            ORDER BY e.time_begin DESC
            LIMIT 1
            """,
            (user_id,),
        )
        return UserProfile(
            **user,
            last_event_date=_parse_ts(latest["time_begin"]) if latest else None,
            last_place_name=latest["place_name"] if latest else None,
        )

    async def search_places(
        self,
        city: str,
        place_type: str | None = None,
        min_capacity: int | None = None,
        limit: int = 10,
    ) -> list[Place]:
        query = "SELECT * FROM places WHERE status = 'ACCEPTED' AND lower(city) LIKE ?"
        params: list[Any] = [f"%{city.lower()}%"]
        if place_type:
            query += " AND lower(type) LIKE ?"
            params.append(f"%{place_type.lower()}%")
        if min_capacity:
            query += " AND capacity >= ?"
            params.append(min_capacity)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        rows = await self._fetch_all(query, tuple(params))
        return [self._place(row) for row in rows]

    async def get_place(self, place_id: int) -> Place | None:
        row = await self._fetch_one("SELECT * FROM places WHERE id = ?", (place_id,))
        return self._place(row) if row else None

    async def list_place_reviews(self, place_id: int, limit: int = 5) -> list[Review]:
        rows = await self._fetch_all(
            """
            SELECT r.*, u.name AS author_name
            FROM reviews r LEFT JOIN users u ON u.id = r.user_id
            WHERE r.place_id = ?
            ORDER BY r.created_at DESC
            LIMIT ?
            """,
            (place_id, limit),
        )
        return [Review(**{**row, "created_at": _parse_ts(row["created_at"])}) for row in rows]

    async def create_event(self, event: NewEvent) -> Event:
        event_id = await self._execute(
            """
            INSERT INTO events
                (name, description, time_begin, place_id, organizer_id,
                 min_age, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.name,
                event.description,
                _ts(event.time_begin),
                event.place_id,
                event.organizer_id,
                event.min_age,
                event.status,
                _ts(datetime.now(UTC)),
            ),
        )
        created = await self.get_event(event_id)
        if created is None:
            raise RuntimeError(f"Event {event_id} vanished right after insert")
        return created

    async def get_event(self, event_id: int) -> Event | None:
        row = await self._fetch_one(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM events e JOIN places p ON p.id = e.place_id
            WHERE e.id = ?
            """,
            (event_id,),
        )
        return self._event(row) if row else None

    async def update_event(self, event_id: int, changes: dict[str, Any]) -> Event:
        unknown = set(changes) - _UPDATABLE_EVENT_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update event columns: {sorted(unknown)}")

        assignments: list[str] = []
        params: list[Any] = []
        for column, value in changes.items():
            assignments.append(f"{column} = ?")
            params.append(_ts(value) if isinstance(value, datetime) else value)

        if assignments:
            params.append(event_id)
            await self._execute(
                f"UPDATE events SET {', '.join(assignments)} WHERE id = ?", tuple(params)
            )

        updated = await self.get_event(event_id)
        if updated is None:
            raise KeyError(event_id)
        return updated

    async def _list_events(self, where: str, params: tuple[Any, ...]) -> list[Event]:
        rows = await self._fetch_all(
            f"""
            SELECT DISTINCT {_EVENT_COLUMNS}
            FROM events e JOIN places p ON p.id = e.place_id
            WHERE {where} AND e.time_begin BETWEEN ? AND ?
            ORDER BY e.time_begin ASC
            """,
            params,
        )
        return [self._event(row) for row in rows]

    async def list_organized_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        return await self._list_events("e.organizer_id = ?", (user_id, _ts(start), _ts(end)))

    async def list_joined_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        return await self._list_events(
            """
            e.id IN (
                SELECT t.event_id FROM tickets t
                JOIN bought_tickets b ON b.ticket_id = t.id
                WHERE b.user_id = ?
            )
            """,
            (user_id, _ts(start), _ts(end)),
        )

    async def list_community_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        return await self._list_events(
            """
            e.community_id IN (
                SELECT community_id FROM community_members
                WHERE user_id = ? AND exit_at IS NULL
            )
            """,
            (user_id, _ts(start), _ts(end)),
        )

    async def get_community(self, community_id: int) -> Community | None:
        row = await self._fetch_one("SELECT * FROM communities WHERE id = ?", (community_id,))
        return Community(**row) if row else None

    async def is_community_member(self, community_id: int, user_id: int) -> bool:
        row = await self._fetch_one(
            """
            SELECT 1 FROM community_members
            WHERE community_id = ? AND user_id = ? AND exit_at IS NULL
            """,
            (community_id, user_id),
        )
        return row is not None

    async def add_community_member(
        self, community_id: int, user_id: int
    ) -> CommunityMember:
        member = CommunityMember(user_id=user_id, community_id=community_id)
        await self._execute(
            """
            INSERT INTO community_members (user_id, community_id, role, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (member.user_id, member.community_id, member.role, _ts(member.created_at)),
        )
        return member

    async def close(self) -> None:
        """Connections are opened per call; nothing to release."""
        return None

    # ---------- Seeding ----------

    async def seed_demo_data(self) -> bool:
        """Insert a small demo catalogue when the database is empty.

        Returns:
            True if rows were inserted, False if data already existed.
        """
        existing = await self._fetch_one("SELECT COUNT(*) AS n FROM places")
        if existing and existing["n"]:
            return False

        now = _ts(datetime.now(UTC))
        async with self._lock, aiosqlite.connect(self.db_path) as db:
            await db.executemany(
                "INSERT INTO users (id, name, last_name, city, role, membership) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (1, "Ana", "Pérez", "Caracas", "CLIENT", "VIP"),
                    (2, "Luis", "Gómez", None, "MARKET", "NORMAL"),
                ],
            )
            await db.executemany(
                """
                INSERT INTO places
                    (id, name, direction, city, country, capacity, type, status, description, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (1, "Cervecería Tovar", "Las Mercedes", "Caracas", "Venezuela", 80, "bar", "ACCEPTED", None, now),
                    (2, "Bar Central", "Chacao", "Caracas", "Venezuela", 50, "bar", "ACCEPTED", None, now),
                    (3, "Restaurante Urrutia", "Altamira", "Caracas", "Venezuela", 120, "restaurant", "ACCEPTED", None, now),
                    (4, "Terraza Norte", "El Rosal", "Caracas", "Venezuela", 200, "club", "PENDING", None, now),
                    (5, "Parque Negra Hipólita", "Prebo", "Valencia", "Venezuela", 500, "park", "ACCEPTED", None, now),
                ],
            )
            await db.execute(
                "INSERT INTO communities (id, name, description, created_by) VALUES (?, ?, ?, ?)",
                (1, "Cerveceros de Caracas", "Catas y encuentros cerveceros", 1),
            )
            await db.executemany(
                "INSERT INTO reviews (user_id, place_id, calification, comment, created_at) VALUES (?, ?, ?, ?, ?)",
                [
                    (2, 3, 5, "La comida es de calidad y el servicio es atento", now),
                    (1, 3, 4, "Buen ambiente para grupos grandes", now),
                ],
            )
            await db.commit()

        logger.info("Seeded demo data into %s", self.db_path)
        return True
