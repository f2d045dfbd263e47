#!/usr/bin/env python3
"""
In-Memory Domain Store Implementation

Plain-dict storage for users, places, events and communities.

CONFIG: data_store.type = "memory"
PURPOSE: Development/testing - all data lost on restart
FEATURES: No I/O, seeding helpers for tests
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

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


class InMemoryDataStore:
    """Fast in-memory storage - configure with type='memory'. Data lost on restart."""

    def __init__(self) -> None:
        self._users: dict[int, UserProfile] = {}
        self._places: dict[int, Place] = {}
        self._events: dict[int, Event] = {}
        self._reviews: list[Review] = []
        self._communities: dict[int, Community] = {}
        self._members: list[CommunityMember] = []
        # (user_id, event_id) pairs for bought tickets
        self._tickets: set[tuple[int, int]] = set()
        self._next_event_id = 1

    # ---------- Seeding helpers ----------

    def add_user(self, user: UserProfile) -> UserProfile:
        self._users[user.id] = user
        return user

    def add_place(self, place: Place) -> Place:
        self._places[place.id] = place
        return place

    def add_event(self, event: Event) -> Event:
        self._events[event.id] = event
        self._next_event_id = max(self._next_event_id, event.id + 1)
        return event

    def add_review(self, review: Review) -> Review:
        self._reviews.append(review)
        return review

    def add_community(self, community: Community) -> Community:
        self._communities[community.id] = community
        return community

    def add_ticket(self, user_id: int, event_id: int) -> None:
        self._tickets.add((user_id, event_id))

    # ---------- DataStore protocol ----------

    def _with_place(self, event: Event) -> Event:
        place = self._places.get(event.place_id)
        if place is None:
            return event.model_copy()
        return event.model_copy(update={"place_name": place.name, "place_city": place.city})

    async def get_user_profile(self, user_id: int) -> UserProfile | None:
        user = self._users.get(user_id)
        if user is None:
            return None

        organized = [e for e in self._events.values() if e.organizer_id == user_id]
        if not organized:
            return user.model_copy()

        latest = max(organized, key=lambda e: e.time_begin)
        place = self._places.get(latest.place_id)
        return user.model_copy(
            update={
                "last_event_date": latest.time_begin,
                "last_place_name": place.name if place else None,
            }
        )

    async def search_places(
        self,
        city: str,
        place_type: str | None = None,
        min_capacity: int | None = None,
        limit: int = 10,
    ) -> list[Place]:
        city_lower = city.lower()
        matches = [
            p
            for p in self._places.values()
            if p.status == "ACCEPTED"
            and city_lower in p.city.lower()
            and (not place_type or place_type.lower() in (p.type or "").lower())
            and (not min_capacity or p.capacity >= min_capacity)
        ]
        matches.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return [p.model_copy() for p in matches[:limit]]

    async def get_place(self, place_id: int) -> Place | None:
        place = self._places.get(place_id)
        return place.model_copy() if place else None

    async def list_place_reviews(self, place_id: int, limit: int = 5) -> list[Review]:
        reviews = [r for r in self._reviews if r.place_id == place_id]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        result: list[Review] = []
        for review in reviews[:limit]:
            author = self._users.get(review.user_id)
            result.append(
                review.model_copy(update={"author_name": author.name if author else None})
            )
        return result

    async def create_event(self, event: NewEvent) -> Event:
        created = Event(id=self._next_event_id, **event.model_dump())
        self._events[created.id] = created
        self._next_event_id += 1
        logger.debug("Created event %d in memory", created.id)
        return self._with_place(created)

    async def get_event(self, event_id: int) -> Event | None:
        event = self._events.get(event_id)
        return self._with_place(event) if event else None

    async def update_event(self, event_id: int, changes: dict[str, Any]) -> Event:
        event = self._events[event_id]
        updated = event.model_copy(update=changes)
        self._events[event_id] = updated
        return self._with_place(updated)

    def _in_window(self, event: Event, start: datetime, end: datetime) -> bool:
        return start <= event.time_begin <= end

    def _sorted(self, events: list[Event]) -> list[Event]:
        return [self._with_place(e) for e in sorted(events, key=lambda e: e.time_begin)]

    async def list_organized_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        return self._sorted(
            [
                e
                for e in self._events.values()
                if e.organizer_id == user_id and self._in_window(e, start, end)
            ]
        )

    async def list_joined_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        return self._sorted(
            [
                e
                for e in self._events.values()
                if (user_id, e.id) in self._tickets and self._in_window(e, start, end)
            ]
        )

    async def list_community_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]:
        communities = {
            m.community_id
            for m in self._members
            if m.user_id == user_id and m.exit_at is None
        }
        return self._sorted(
            [
                e
                for e in self._events.values()
                if e.community_id in communities and self._in_window(e, start, end)
            ]
        )

    async def get_community(self, community_id: int) -> Community | None:
        community = self._communities.get(community_id)
        return community.model_copy() if community else None

    async def is_community_member(self, community_id: int, user_id: int) -> bool:
        return any(
            m.community_id == community_id and m.user_id == user_id and m.exit_at is None
            for m in self._members
        )

    async def add_community_member(
        self, community_id: int, user_id: int
    ) -> CommunityMember:
        member = CommunityMember(user_id=user_id, community_id=community_id)
        self._members.append(member)
        return member

    async def close(self) -> None:
        return None
