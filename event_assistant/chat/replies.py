"""
Reply Guards

Fixed and synthesized replies used when the model's own narration can't be
shown to the user: pseudo-code instead of a tool call, empty text after tool
execution, or an exhausted round budget.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import ToolResultPart

logger = logging.getLogger(__name__)

MALFORMED_REPLY = (
    "Error interno: El asistente generó código en lugar de ejecutar las herramientas. "
    "Por favor intenta de nuevo."
)
GENERIC_APOLOGY = "Lo siento, hubo un problema al procesar tu solicitud. Por favor intenta de nuevo."
NO_RESPONSE_REPLY = "No pude generar una respuesta en este momento."
NO_PLACES_REPLY = "No pude encontrar lugares con los criterios actuales."

# Literal code markers a model emits when it "writes" a call instead of making it
_CODE_MARKERS = ("print(", "console.log(", "default_api")

_EVENT_LISTINGS = {"get_upcoming_events", "get_joined_events", "get_community_events"}
_MAX_LISTED = 5


def is_malformed(text: str, tool_names: Iterable[str]) -> bool:
    """True when the text looks like code or names a tool instead of calling it."""
    if any(marker in text for marker in _CODE_MARKERS):
        return True
    return any(name in text for name in tool_names)


def _list_places(places: list[dict]) -> str:
    lines = ["Encontré estas opciones:"]
    for index, place in enumerate(places[:_MAX_LISTED], start=1):
        city = f" en {place['city']}" if place.get("city") else ""
        summary = f" - {place['summary']}" if place.get("summary") else ""
        lines.append(f"{index}. {place.get('name', '')}{city}{summary}")
    return "\n".join(lines)


def _list_events(events: list[dict]) -> str:
    lines = ["Estos son los eventos que encontré:"]
    for index, event in enumerate(events[:_MAX_LISTED], start=1):
        when = f" - {event['localTime']}" if event.get("localTime") else ""
        lines.append(f"{index}. {event.get('name', '')}{when}")
    return "\n".join(lines)


def fallback_reply(last_result: ToolResultPart | None) -> str:
    """
    Deterministic reply built from the last tool result of the turn.

    Used when the model answered a tool batch with empty text.
    """
    if last_result is None:
        return GENERIC_APOLOGY

    response = last_result.response
    data = response.get("data")

    if last_result.name == "get_available_places" and isinstance(data, list):
        return _list_places(data) if data else NO_PLACES_REPLY

    if last_result.name in _EVENT_LISTINGS and isinstance(data, list):
        return _list_events(data) if data else "No encontré eventos en los próximos días."

    if response.get("success") is False and response.get("message"):
        return str(response["message"])

    if response.get("success") is True and isinstance(response.get("message"), str):
        return response["message"]

    logger.debug("No fallback template for tool '%s'", last_result.name)
    return GENERIC_APOLOGY
