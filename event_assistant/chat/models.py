"""
Chat Data Models

Conversation transcript, user context and engine request/response types,
plus the OpenAI-compatible wire types the LLM client speaks.
All strongly typed with Pydantic for validation and type safety.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ==============================================================================
# CONVERSATION TRANSCRIPT
# ==============================================================================

Role = Literal["user", "model", "tool"]

# Roles other clients send for the same thing
_ROLE_ALIASES = {"assistant": "model", "function": "tool"}


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"


class ToolCallPart(CamelModel):
    """A structured request from the model to run a named tool."""

    id: str = Field(default_factory=_new_call_id)
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(CamelModel):
    """The envelope produced by running a tool call."""

    id: str | None = None
    name: str
    response: dict[str, Any]


class Part(CamelModel):
    text: str | None = None
    tool_call: ToolCallPart | None = Field(
        default=None, validation_alias=AliasChoices("toolCall", "tool_call", "functionCall")
    )
    tool_result: ToolResultPart | None = Field(
        default=None,
        validation_alias=AliasChoices("toolResult", "tool_result", "functionResponse"),
    )


class Message(CamelModel):
    """One transcript entry; the whole list is resent to the model every call."""

    role: Role
    parts: list[Part] = Field(default_factory=list)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _ROLE_ALIASES.get(v, v)
        return v

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", parts=[Part(text=text)])

    @classmethod
    def model_text(cls, text: str) -> Message:
        return cls(role="model", parts=[Part(text=text)])

    @classmethod
    def tool_results(cls, results: list[ToolResultPart]) -> Message:
        return cls(role="tool", parts=[Part(tool_result=r) for r in results])

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if p.text)

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p.tool_call for p in self.parts if p.tool_call is not None]

    @property
    def tool_result_parts(self) -> list[ToolResultPart]:
        return [p.tool_result for p in self.parts if p.tool_result is not None]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_history(history: list[Message]) -> list[dict[str, Any]]:
    return [m.to_dict() for m in history]


class UserContext(CamelModel):
    """Denormalized snapshot used to personalize the system instruction."""

    id: int
    role: str = "CLIENT"
    membership: str | None = None
    name: str | None = None
    last_name: str | None = None
    city: str | None = None
    last_event_date: datetime | None = None
    last_place_name: str | None = None


class ModelReply(BaseModel):
    """What the language model answered: plain text and/or tool calls."""

    text: str = ""
    tool_calls: list[ToolCallPart] = Field(default_factory=list)
    model: str | None = None
    finish_reason: str | None = None

    def to_message(self) -> Message:
        parts: list[Part] = []
        if self.text:
            parts.append(Part(text=self.text))
        parts.extend(Part(tool_call=call) for call in self.tool_calls)
        return Message(role="model", parts=parts)


class ChatRequest(BaseModel):
    message: str
    user_id: int
    session_id: str | None = None
    history: list[Message] | None = None
    user_context: UserContext | None = None


class ChatResult(BaseModel):
    reply: str
    tools_used: list[str] = Field(default_factory=list)
    history: list[Message] = Field(default_factory=list)
    session_id: str | None = None
    user_context: UserContext


# ==============================================================================
# LLM API WIRE TYPES (OpenAI-compatible chat completions)
# ==============================================================================


class SystemMessage(BaseModel):
    """System message for setting context."""

    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    """User message."""

    role: Literal["user"] = "user"
    content: str


class FunctionCall(BaseModel):
    """Function call within a tool call."""

    name: str
    arguments: str = Field(default="{}")  # JSON string


class ToolCall(BaseModel):
    """Tool call from LLM."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @classmethod
    def from_part(cls, part: ToolCallPart) -> ToolCall:
        return cls(
            id=part.id,
            function=FunctionCall(name=part.name, arguments=json.dumps(part.args, ensure_ascii=False)),
        )


class AssistantMessage(BaseModel):
    """Assistant message with optional tool calls."""

    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None

    @field_validator("tool_calls")
    @classmethod
    def validate_tool_calls(cls, v: list[ToolCall] | None) -> list[ToolCall] | None:
        """Convert empty tool_calls list to None to avoid API errors."""
        if v is not None and len(v) == 0:
            return None
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssistantMessage:
        """Create AssistantMessage from a chat-completions choice message."""
        tool_calls = None
        if data.get("tool_calls"):
            tool_calls = [
                ToolCall(
                    id=tc.get("id") or _new_call_id(),
                    type=tc.get("type", "function"),
                    function=FunctionCall(
                        name=tc["function"]["name"],
                        arguments=tc["function"].get("arguments") or "{}",
                    ),
                )
                for tc in data["tool_calls"]
            ]

        return cls(content=data.get("content"), tool_calls=tool_calls)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict format for the API, omitting empty tool_calls."""
        result: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            result["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        return result


class ToolMessage(BaseModel):
    """Tool response message."""

    role: Literal["tool"] = "tool"
    content: str
    tool_call_id: str


# Union of all message types for conversation
ChatCompletionMessage = SystemMessage | UserMessage | AssistantMessage | ToolMessage


class LLMResponseData(BaseModel):
    """Structured LLM response data."""

    message: AssistantMessage
    finish_reason: str | None = None
    index: int = 0
    model: str
