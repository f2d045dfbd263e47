"""Event tools: create and edit events, list the caller's upcoming plans."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from event_assistant.store.models import NewEvent

from .formatting import event_to_dict
from .params import CreateEventParams, EventWindowParams, UpdateEventParams
from .registry import ToolContext, ToolDescriptor
from .results import (
    EVENT_NOT_FOUND,
    INVALID_DATE,
    NO_CHANGES,
    NOT_EVENT_OWNER,
    PAST_DATE,
    PLACE_NOT_AVAILABLE,
    PLACE_NOT_FOUND,
    ResolvedDate,
    failure,
)

logger = logging.getLogger(__name__)


def _resolve_future_date(phrase: str, ctx: ToolContext) -> ResolvedDate | dict[str, Any]:
    """Resolve a phrase and reject anything not strictly in the future."""
    resolved = ctx.resolver.resolve(phrase)
    if not isinstance(resolved, ResolvedDate):
        return failure(resolved.reason or INVALID_DATE, resolved.message, {"input": phrase})

    now = ctx.resolver.now()
    if resolved.timestamp <= now:
        return failure(
            PAST_DATE,
            f'La fecha "{phrase}" parece estar en el pasado. '
            "Por favor proporciona una fecha futura.",
            {
                "input": phrase,
                "parsedDate": resolved.timestamp.isoformat(),
                "now": now.isoformat(),
            },
        )
    return resolved


async def create_event(params: CreateEventParams, ctx: ToolContext) -> dict[str, Any]:
    place = await ctx.store.get_place(params.place_id)
    if place is None:
        return failure(
            PLACE_NOT_FOUND,
            f"No se encontró el lugar con ID {params.place_id}. "
            "Por favor busca lugares disponibles primero.",
            {"placeId": params.place_id},
        )

    if place.status != "ACCEPTED":
        return failure(
            PLACE_NOT_AVAILABLE,
            f'El lugar "{place.name}" no está disponible actualmente.',
            {"placeId": place.id, "status": place.status},
        )

    resolved = _resolve_future_date(params.date, ctx)
    if not isinstance(resolved, ResolvedDate):
        return resolved

    event = await ctx.store.create_event(
        NewEvent(
            name=params.event_name,
            description=params.description or f"Evento creado en {place.name}",
            time_begin=resolved.timestamp,
            place_id=place.id,
            organizer_id=ctx.user_id,
            min_age=params.min_age,
        )
    )
    logger.info("User %d created event %d at place %d", ctx.user_id, event.id, place.id)

    tz = ctx.resolver.timezone
    return {
        "success": True,
        "event": event_to_dict(event, tz),
        "message": f'Evento "{params.event_name}" creado exitosamente en {place.name}, {place.city}',
        "details": {
            "placeId": place.id,
            "timeZone": str(tz),
            "parsedDate": resolved.timestamp.isoformat(),
        },
    }


async def update_event(params: UpdateEventParams, ctx: ToolContext) -> dict[str, Any]:
    event = await ctx.store.get_event(params.event_id)
    if event is None:
        return failure(
            EVENT_NOT_FOUND,
            f"No encontré el evento con ID {params.event_id}.",
            {"eventId": params.event_id},
        )

    if event.organizer_id != ctx.user_id:
        return failure(
            NOT_EVENT_OWNER,
            f'Solo el organizador puede modificar el evento "{event.name}". '
            "Puedes contactar al organizador para pedir el cambio.",
            {"eventId": event.id},
        )

    changes: dict[str, Any] = {}
    if params.event_name and params.event_name != event.name:
        changes["name"] = params.event_name
    if params.description is not None and params.description != event.description:
        changes["description"] = params.description
    if params.date:
        resolved = _resolve_future_date(params.date, ctx)
        if not isinstance(resolved, ResolvedDate):
            return resolved
        if resolved.timestamp != event.time_begin:
            changes["time_begin"] = resolved.timestamp
    if params.remove_end_time and event.time_end is not None:
        changes["time_end"] = None

    if not changes:
        return failure(
            NO_CHANGES,
            f'No se indicaron cambios para el evento "{event.name}".',
            {"eventId": event.id},
        )

    updated = await ctx.store.update_event(event.id, changes)
    logger.info("User %d updated event %d: %s", ctx.user_id, event.id, sorted(changes))
    return {
        "success": True,
        "event": event_to_dict(updated, ctx.resolver.timezone),
        "message": f'Evento "{updated.name}" actualizado.',
        "changes": sorted(changes),
    }


async def get_upcoming_events(params: EventWindowParams, ctx: ToolContext) -> list[dict[str, Any]]:
    now = ctx.resolver.now()
    events = await ctx.store.list_organized_events(
        ctx.user_id, now, now + timedelta(days=params.days)
    )
    return [event_to_dict(e, ctx.resolver.timezone) for e in events]


async def get_joined_events(params: EventWindowParams, ctx: ToolContext) -> list[dict[str, Any]]:
    now = ctx.resolver.now()
    events = await ctx.store.list_joined_events(
        ctx.user_id, now, now + timedelta(days=params.days)
    )
    return [event_to_dict(e, ctx.resolver.timezone) for e in events]


EVENT_TOOLS = [
    ToolDescriptor(
        name="create_event",
        description=(
            "Creates a new event at a place using the place ID. Use the exact ID from "
            'get_available_places results: "the first one" or a place name must be '
            "matched to the ID from your previous search. Confirm place, date and time first."
        ),
        parameters=CreateEventParams,
        handler=create_event,
    ),
    ToolDescriptor(
        name="update_event",
        description=(
            "Updates name, description or date of an event organized by the user. Use "
            "removeEndTime=true to clear the end time. Only the organizer can edit."
        ),
        parameters=UpdateEventParams,
        handler=update_event,
    ),
    ToolDescriptor(
        name="get_upcoming_events",
        description="Lists events organized by the user in the next N days (default 30).",
        parameters=EventWindowParams,
        handler=get_upcoming_events,
    ),
    ToolDescriptor(
        name="get_joined_events",
        description="Lists events the user holds tickets for in the next N days (default 30).",
        parameters=EventWindowParams,
        handler=get_joined_events,
    ),
]
