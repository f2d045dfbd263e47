#!/usr/bin/env python3
"""
Domain Store Module

Venue/event storage consumed by the assistant's tools.
"""

from __future__ import annotations

from .factory import create_data_store
from .memory_store import InMemoryDataStore
from .models import Community, CommunityMember, Event, NewEvent, Place, Review, UserProfile
from .repository import DataStore
from .sqlite_store import SQLiteDataStore

__all__ = [
    "Community",
    "CommunityMember",
    "DataStore",
    "Event",
    "InMemoryDataStore",
    "NewEvent",
    "Place",
    "Review",
    "SQLiteDataStore",
    "UserProfile",
    "create_data_store",
]
