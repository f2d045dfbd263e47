"""
Event Assistant Tools

Capability registry, tool handlers and the date/time resolver they share.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .communities import COMMUNITY_TOOLS
from .date_resolver import DateResolver, TimeOfDay
from .events import EVENT_TOOLS
from .places import PLACE_TOOLS
from .registry import ToolContext, ToolDescriptor, ToolRegistry
from .results import ResolvedDate, ResolvedDateTime, ToolFailure, UnresolvedDate

if TYPE_CHECKING:
    from event_assistant.store import DataStore


def build_registry(store: DataStore, resolver: DateResolver) -> ToolRegistry:
    """Registry with every domain tool the assistant can call."""
    registry = ToolRegistry(store, resolver)
    registry.register_all(PLACE_TOOLS + EVENT_TOOLS + COMMUNITY_TOOLS)
    return registry


__all__ = [
    "DateResolver",
    "ResolvedDate",
    "ResolvedDateTime",
    "TimeOfDay",
    "ToolContext",
    "ToolDescriptor",
    "ToolFailure",
    "ToolRegistry",
    "UnresolvedDate",
    "build_registry",
]
