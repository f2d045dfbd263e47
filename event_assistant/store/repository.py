#!/usr/bin/env python3
"""
Domain Data Store Interface

The narrow surface the assistant needs from the venue/event database. Tool
handlers and the chat orchestrator only ever talk to this protocol.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from .models import Community, CommunityMember, Event, NewEvent, Place, Review, UserProfile


class DataStore(Protocol):
    """Protocol defining the interface for domain storage backends."""

    async def get_user_profile(self, user_id: int) -> UserProfile | None:
        """Profile plus the most recent event the user organized, if any."""
        ...

    async def search_places(
        self,
        city: str,
        place_type: str | None = None,
        min_capacity: int | None = None,
        limit: int = 10,
    ) -> list[Place]:
        """ACCEPTED places matching city/type (case-insensitive contains), newest first."""
        ...

    async def get_place(self, place_id: int) -> Place | None: ...

    async def list_place_reviews(self, place_id: int, limit: int = 5) -> list[Review]: ...

    async def create_event(self, event: NewEvent) -> Event: ...

    async def get_event(self, event_id: int) -> Event | None: ...

    async def update_event(self, event_id: int, changes: dict[str, Any]) -> Event: ...

    async def list_organized_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]: ...

    async def list_joined_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]: ...

    async def list_community_events(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Event]: ...

    async def get_community(self, community_id: int) -> Community | None: ...

    async def is_community_member(self, community_id: int, user_id: int) -> bool: ...

    async def add_community_member(
        self, community_id: int, user_id: int
    ) -> CommunityMember: ...

    async def close(self) -> None: ...
