"""Helpers that turn store records into the JSON the language model reads."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any

from event_assistant.store.models import Event, Place

_WEEKDAYS_ES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
_MONTHS_ES = [
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
]


def describe_datetime(value: datetime, tz: tzinfo) -> str:
    """Spanish, human-readable local time: 'viernes 31 de mayo de 2025, 19:00'."""
    local = value.astimezone(tz)
    return (
        f"{_WEEKDAYS_ES[local.weekday()]} {local.day} de {_MONTHS_ES[local.month - 1]} "
        f"de {local.year}, {local:%H:%M}"
    )


def place_summary(place: Place) -> str:
    if place.description:
        return place.description
    kind = (place.type or "lugar").capitalize()
    return f"{kind} en {place.direction or place.city}"


def place_to_dict(place: Place) -> dict[str, Any]:
    return {
        "id": place.id,
        "name": place.name,
        "city": place.city,
        "capacity": place.capacity,
        "type": place.type,
        "direction": place.direction,
        "summary": place_summary(place),
    }


def event_to_dict(event: Event, tz: tzinfo) -> dict[str, Any]:
    return {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "place": {"id": event.place_id, "name": event.place_name, "city": event.place_city},
        "timeBegin": event.time_begin.astimezone(tz).isoformat(),
        "timeEnd": event.time_end.astimezone(tz).isoformat() if event.time_end else None,
        "localTime": describe_datetime(event.time_begin, tz),
        "minAge": event.min_age,
        "status": event.status,
    }
