"""Tool Registry for the Event Assistant

This module is the single source of truth for the assistant's capabilities:
- Holds immutable ToolDescriptors (name, description, parameter model, handler)
- Emits OpenAI-compatible tool definitions on demand
- Validates arguments against the parameter model and dispatches by name

The language model only ever sees declarations; handlers stay server-side and
are looked up by tool name when the model requests a call.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mcp import McpError, types
from pydantic import BaseModel, ValidationError

from .results import INVALID_ARGUMENTS, failure

if TYPE_CHECKING:
    from event_assistant.store import DataStore

    from .date_resolver import DateResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """Per-call collaborators handed to every handler."""

    user_id: int
    store: DataStore
    resolver: DateResolver


ToolHandler = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A named, schema-described, handler-backed domain action."""

    name: str
    description: str
    parameters: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        return _clean_schema(self.parameters.model_json_schema(by_alias=True))


def _clean_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """
    Reduce a Pydantic JSON schema to the object/properties/required subset that
    every provider accepts: drop titles and collapse ``X | None`` unions to X.
    """
    cleaned: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "title":
            continue
        if key == "anyOf" and isinstance(value, list):
            non_null = [v for v in value if v.get("type") != "null"]
            if len(non_null) == 1:
                cleaned.update(_clean_schema(non_null[0]))
                continue
        if key == "properties" and isinstance(value, dict):
            cleaned[key] = {name: _clean_schema(prop) for name, prop in value.items()}
        elif key == "default" and value is None:
            continue
        else:
            cleaned[key] = value

    if cleaned.get("type") == "object":
        cleaned.setdefault("properties", {})
        cleaned.setdefault("required", [])
    return cleaned


class ToolRegistry:
    """
    Fixed capability surface for the assistant.

    Key characteristics:
    - Immutable descriptors registered once at process start
    - Minimal OpenAI wrapper: {"type": "function", "function": {name, description,
      parameters}}
    - Arguments validated at the handler boundary, failures returned as data
    """

    def __init__(self, store: DataStore, resolver: DateResolver) -> None:
        self.store = store
        self.resolver = resolver
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor
        logger.debug("Registered tool '%s'", descriptor.name)

    def register_all(self, descriptors: list[ToolDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def get(self, tool_name: str) -> ToolDescriptor | None:
        return self._tools.get(tool_name)

    def get_tool_info(self, tool_name: str) -> ToolDescriptor:
        """Get a descriptor by name, raising the MCP invalid-params error if absent."""
        descriptor = self._tools.get(tool_name)
        if descriptor is None:
            raise McpError(
                error=types.ErrorData(
                    code=types.INVALID_PARAMS,
                    message=f"Tool '{tool_name}' not found",
                )
            )
        return descriptor

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def _to_openai_tool(self, descriptor: ToolDescriptor) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": descriptor.name,
                "description": descriptor.description,
                "parameters": descriptor.input_schema(),
            },
        }

    def get_openai_tools(self) -> list[dict[str, Any]]:
        """Build the declared tool list on demand from the current registry."""
        return [self._to_openai_tool(d) for d in self._tools.values()]

    def describe(self) -> list[dict[str, Any]]:
        """Introspection listing for the adapters: never exposes handlers."""
        return [
            {
                "name": d.name,
                "description": d.description,
                "parameters": d.input_schema(),
            }
            for d in self._tools.values()
        ]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any], user_id: int) -> Any:
        """
        Validate raw model arguments and run the handler.

        Unknown names raise McpError; invalid arguments come back as an
        INVALID_ARGUMENTS failure. Handler exceptions propagate to the caller.
        """
        descriptor = self.get_tool_info(tool_name)

        try:
            params = descriptor.parameters.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning("Invalid arguments for %s: %s", tool_name, e)
            return failure(
                INVALID_ARGUMENTS,
                f"Los parámetros enviados a {tool_name} no son válidos.",
                {
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
                        for err in e.errors()
                    ]
                },
            )

        context = ToolContext(user_id=user_id, store=self.store, resolver=self.resolver)
        return await descriptor.handler(params, context)
