"""
Tool Parameter Models

One Pydantic model per tool. The same model produces the JSON schema that is
declared to the language model and validates the arguments it sends back, so
a malformed call turns into an INVALID_ARGUMENTS result instead of reaching a
handler. Field names are exposed in camelCase (placeId, minCapacity, ...).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolParameters(BaseModel):
    """Base class: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GetAvailablePlacesParams(ToolParameters):
    city: str = Field(
        min_length=1,
        description=(
            "REQUIRED: City where to search for places. Use the user's registered "
            "city when there is one; otherwise ask the user first."
        ),
    )
    type: str | None = Field(
        default=None, description="Filter by place type (e.g., restaurant, bar, club, park)"
    )
    min_capacity: int | None = Field(default=None, ge=0, description="Minimum capacity required")
    limit: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Number of results to return. Default is 10 to give the user good options.",
    )


class GetPlaceReviewsParams(ToolParameters):
    place_id: int = Field(
        description="ID of the place exactly as returned by get_available_places"
    )
    limit: int = Field(default=5, ge=1, le=20, description="Maximum number of reviews")


class CreateEventParams(ToolParameters):
    place_id: int = Field(
        description=(
            'ID of the place from get_available_places results. "The first one" means '
            "the first place of the most recent listing."
        )
    )
    event_name: str = Field(
        min_length=1,
        description='Name of the event. If the user gave none, use "Reunión en [Place]".',
    )
    date: str = Field(
        description=(
            'Date in natural language like "2025-10-20", "mañana", "viernes 8pm". '
            "Default time is 8pm when none is given."
        )
    )
    description: str | None = Field(
        default=None, description="Optional description; auto-generated when omitted."
    )
    min_age: int = Field(
        default=18,
        ge=0,
        le=120,
        description="Minimum age. Only set it if the user mentions age restrictions.",
    )


class UpdateEventParams(ToolParameters):
    event_id: int = Field(
        description="ID of an event from get_upcoming_events results (never ask the user for it)"
    )
    event_name: str | None = Field(default=None, description="New event name")
    description: str | None = Field(default=None, description="New description")
    date: str | None = Field(
        default=None, description="New date/time in natural language, same formats as create_event"
    )
    remove_end_time: bool = Field(
        default=False, description="Set true to clear the event's end time"
    )


class EventWindowParams(ToolParameters):
    days: int = Field(
        default=30, ge=1, le=365, description="How many days ahead to look (default 30)"
    )


class JoinCommunityParams(ToolParameters):
    community_id: int = Field(description="ID of the community to join")
