"""
Domain Data Models

Pydantic records exchanged between the data store and the tool handlers.
Field names follow the storage schema (snake_case); the handlers decide what
the language model gets to see.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

# ---------- Type definitions ----------

UserRole = Literal["CLIENT", "MARKET", "ADMIN"]
Membership = Literal["NORMAL", "VIP"]
PlaceStatus = Literal["ACCEPTED", "REJECTED", "PENDING"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# ---------- Records ----------


class UserProfile(BaseModel):
    id: int
    name: str | None = None
    last_name: str | None = None
    city: str | None = None
    role: UserRole = "CLIENT"
    membership: Membership | None = "NORMAL"
    last_event_date: datetime | None = None
    last_place_name: str | None = None


class Place(BaseModel):
    id: int
    name: str
    direction: str | None = None
    city: str
    country: str | None = None
    capacity: int = 0
    type: str | None = None
    status: PlaceStatus = "PENDING"
    description: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class Event(BaseModel):
    id: int
    name: str
    description: str | None = None
    time_begin: datetime
    time_end: datetime | None = None
    place_id: int
    organizer_id: int
    community_id: int | None = None
    min_age: int = 18
    status: str = "proximo"
    created_at: datetime = Field(default_factory=utc_now)
    # filled in by queries that join the place
    place_name: str | None = None
    place_city: str | None = None


class NewEvent(BaseModel):
    name: str
    description: str
    time_begin: datetime
    place_id: int
    organizer_id: int
    min_age: int = 18
    status: str = "proximo"


class Review(BaseModel):
    id: int
    user_id: int
    place_id: int | None = None
    event_id: int | None = None
    calification: int
    comment: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    author_name: str | None = None


class Community(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_by: int | None = None


class CommunityMember(BaseModel):
    user_id: int
    community_id: int
    role: str = "MEMBER"
    created_at: datetime = Field(default_factory=utc_now)
    exit_at: datetime | None = None
