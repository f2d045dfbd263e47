"""
LLM HTTP client for OpenAI-compatible chat-completion endpoints.

Translates the assistant's transcript (user/model/tool messages with
structured tool calls) into the chat-completions wire format, posts it with
the declared tools, and parses the reply back into text plus tool calls.
The service is stateless: the whole transcript is sent on every call.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Protocol

import httpx
from mcp import McpError, types

from event_assistant.chat.logging_utils import (
    log_llm_request_complete,
    log_llm_request_start,
    log_tool_args_error,
)
from event_assistant.chat.models import (
    AssistantMessage,
    ChatCompletionMessage,
    LLMResponseData,
    Message,
    ModelReply,
    SystemMessage,
    ToolCall,
    ToolCallPart,
    ToolMessage,
    UserMessage,
)
from event_assistant.config import Configuration

logger = logging.getLogger(__name__)


class LanguageModel(Protocol):
    """Anything that can answer a transcript with text or tool calls."""

    async def generate(
        self,
        system_instruction: str,
        history: list[Message],
        tools: list[dict[str, Any]],
    ) -> ModelReply: ...


def _unanswered_result(call: ToolCall) -> ToolMessage:
    return ToolMessage(
        tool_call_id=call.id,
        content=json.dumps({"success": False, "reason": "NO_RESULT", "message": "Sin resultado"}),
    )


def to_wire_messages(system_instruction: str, history: list[Message]) -> list[ChatCompletionMessage]:
    """
    Convert the transcript into chat-completions messages.

    Every assistant tool call must be answered by a tool message with the
    same id before the next user/assistant turn. Results that arrive without
    an id (e.g. histories from other clients) are paired by tool name.
    """
    wire: list[ChatCompletionMessage] = [SystemMessage(content=system_instruction)]
    pending: list[ToolCall] = []

    def close_pending() -> None:
        wire.extend(_unanswered_result(call) for call in pending)
        pending.clear()

    for message in history:
        if message.role == "user":
            close_pending()
            wire.append(UserMessage(content=message.text))
        elif message.role == "model":
            close_pending()
            calls = [ToolCall.from_part(part) for part in message.tool_calls]
            wire.append(AssistantMessage(content=message.text or None, tool_calls=calls or None))
            pending.extend(calls)
        else:
            for result in message.tool_result_parts:
                match = next((c for c in pending if c.id == result.id), None)
                if match is None:
                    match = next((c for c in pending if c.function.name == result.name), None)
                if match is None:
                    logger.warning("Dropping tool result for '%s' with no matching call", result.name)
                    continue
                pending.remove(match)
                wire.append(
                    ToolMessage(
                        tool_call_id=match.id,
                        content=json.dumps(result.response, ensure_ascii=False, default=str),
                    )
                )

    close_pending()
    return wire


def _parse_arguments(call: ToolCall) -> dict[str, Any]:
    try:
        args = json.loads(call.function.arguments or "{}")
    except json.JSONDecodeError as e:
        log_tool_args_error(call.function.name, e)
        return {}
    return args if isinstance(args, dict) else {}


class LLMClient:
    """
    HTTP client for the configured LLM provider.

    Connection pooling and timeouts come from the ``connection_pool`` config
    section; provider, model and sampling parameters from ``llm``.
    """

    def __init__(
        self,
        configuration: Configuration,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.configuration = configuration
        self.config: dict[str, Any] = configuration.get_llm_config()
        self.api_key: str | None = configuration.get_llm_api_key_or_none()
        self.provider: str = self._detect_provider(self.config.get("base_url", ""))
        self._connection_pool_config = configuration.get_connection_pool_config()
        self._log_requests = configuration.get_logging_config().get("modules", {}).get(
            "connection_pool", {}
        ).get("enable_features", {}).get("http_requests", False)

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self.client = httpx.AsyncClient(
            base_url=self.config["base_url"],
            headers=headers,
            timeout=self._connection_pool_config["request_timeout_seconds"],
            http2=transport is None,
            limits=httpx.Limits(
                max_connections=self._connection_pool_config["max_connections"],
                max_keepalive_connections=self._connection_pool_config["max_keepalive_connections"],
                keepalive_expiry=self._connection_pool_config["keepalive_expiry_seconds"],
            ),
            transport=transport,
            trust_env=False,
        )
        logger.info("LLM client initialized with provider: %s", self.provider)
        logger.info("Model: %s", self.config.get("model", "unknown"))

    def _detect_provider(self, base_url: str) -> str:
        """Detect provider from base URL for provider-specific handling."""
        if "openai.com" in base_url:
            return "openai"
        if "groq.com" in base_url:
            return "groq"
        if "openrouter.ai" in base_url:
            return "openrouter"
        if "generativelanguage.googleapis.com" in base_url:
            return "gemini"
        return "unknown"

    def _build_payload(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """
        Build API payload by passing through all config parameters except
        the infrastructure ones.
        """
        payload: dict[str, Any] = {
            "model": self.config["model"],
            "messages": messages,
        }

        excluded_keys = {"base_url", "model", "api_key_env"}
        for key, value in self.config.items():
            if key not in excluded_keys and value is not None:
                payload[key] = value

        if tools:
            payload["tools"] = tools
            payload.setdefault("tool_choice", "auto")

        return payload

    async def get_response_with_tools(
        self,
        messages: list[ChatCompletionMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponseData:
        """Post one chat-completions request and return the first choice."""
        if not self.api_key:
            raise McpError(
                error=types.ErrorData(
                    code=types.INTERNAL_ERROR,
                    message="LLM API key is not configured",
                )
            )

        request_id = uuid.uuid4().hex[:8]
        start_time = log_llm_request_start(request_id, self.provider, self.config.get("model", ""))
        try:
            dict_messages = [
                msg.to_dict() if isinstance(msg, AssistantMessage) else msg.model_dump()
                for msg in messages
            ]
            payload = self._build_payload(dict_messages, tools)

            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
            result = response.json()

            if self._log_requests:
                logger.info(
                    "HTTP POST /chat/completions | Status: %d | Duration: %.2fms",
                    response.status_code,
                    (time.monotonic() - start_time) * 1000,
                )

            if not result.get("choices"):
                raise McpError(
                    error=types.ErrorData(
                        code=types.PARSE_ERROR,
                        message="No choices in API response",
                    )
                )

            choice = result["choices"][0]
            log_llm_request_complete(request_id, start_time)
            return LLMResponseData(
                message=AssistantMessage.from_dict(choice["message"]),
                finish_reason=choice.get("finish_reason"),
                index=choice.get("index", 0),
                model=result.get("model", self.config["model"]),
            )

        except McpError:
            log_llm_request_complete(request_id, start_time, success=False)
            raise
        except httpx.HTTPStatusError as e:
            log_llm_request_complete(request_id, start_time, success=False)
            logger.error("HTTP error: %s | body: %s", e, e.response.text[:1000])
            raise McpError(
                error=types.ErrorData(code=types.INTERNAL_ERROR, message=f"HTTP error: {e!s}")
            ) from e
        except httpx.HTTPError as e:
            log_llm_request_complete(request_id, start_time, success=False)
            logger.error("HTTP error: %s", e)
            raise McpError(
                error=types.ErrorData(code=types.INTERNAL_ERROR, message=f"HTTP error: {e!s}")
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            log_llm_request_complete(request_id, start_time, success=False)
            logger.error("Unexpected response format: %s", e)
            raise McpError(
                error=types.ErrorData(
                    code=types.PARSE_ERROR,
                    message=f"Unexpected response format: {e!s}",
                )
            ) from e

    async def generate(
        self,
        system_instruction: str,
        history: list[Message],
        tools: list[dict[str, Any]],
    ) -> ModelReply:
        """Send the transcript and return the reply as text plus tool calls."""
        data = await self.get_response_with_tools(to_wire_messages(system_instruction, history), tools)

        calls = [
            ToolCallPart(id=call.id, name=call.function.name, args=_parse_arguments(call))
            for call in data.message.tool_calls or []
        ]
        return ModelReply(
            text=data.message.content or "",
            tool_calls=calls,
            model=data.model,
            finish_reason=data.finish_reason,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> LLMClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()
