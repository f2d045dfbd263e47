"""
Tool Result Models

Structured success/failure shapes returned by tool handlers and the date
resolver. Handlers never raise for expected domain failures; they return a
ToolFailure dict so the model can narrate the problem to the user.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

# Reason codes shared between handlers, the executor and the resolver
TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
HANDLER_ERROR = "HANDLER_ERROR"
INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
ITERATION_LIMIT = "ITERATION_LIMIT"
PLACE_NOT_FOUND = "PLACE_NOT_FOUND"
PLACE_NOT_AVAILABLE = "PLACE_NOT_AVAILABLE"
EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
NOT_EVENT_OWNER = "NOT_EVENT_OWNER"
NO_CHANGES = "NO_CHANGES"
COMMUNITY_NOT_FOUND = "COMMUNITY_NOT_FOUND"
ALREADY_MEMBER = "ALREADY_MEMBER"
INVALID_DATE = "INVALID_DATE"
PAST_DATE = "PAST_DATE"
EMPTY_DATE = "EMPTY_DATE"
UNPARSEABLE_DATE = "UNPARSEABLE_DATE"


class ToolFailure(BaseModel):
    """Failure envelope handed back to the language model."""

    success: Literal[False] = False
    reason: str
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def failure(
    reason: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Shortcut used by handlers: build a failure dict in one call."""
    return ToolFailure(reason=reason, message=message, details=details).to_dict()


def is_failure(result: Any) -> bool:
    return isinstance(result, dict) and result.get("success") is False


class ResolvedDate(BaseModel):
    """A phrase that resolved to a concrete, zone-aware timestamp."""

    success: Literal[True] = True
    timestamp: datetime


class UnresolvedDate(BaseModel):
    """A phrase the resolver could not turn into a timestamp."""

    success: Literal[False] = False
    reason: str
    message: str = Field(min_length=1)


ResolvedDateTime = ResolvedDate | UnresolvedDate
