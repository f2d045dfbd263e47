"""
Command Stream Server

MCP server over stdin/stdout for automation callers, built on the official
SDK's low-level ``Server`` and ``stdio_server`` transport. The SDK owns the
protocol (initialize, tools/list, tools/call, ping); this module only
declares the three commands and runs them against the shared chat
orchestrator and session store. stdout carries protocol frames only, logs
go to stderr.

Caller identity travels inside the command arguments as a bearer token and
is decoded here, not by the transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp import McpError, types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from event_assistant.auth import AuthenticationError, decode_token
from event_assistant.chat import ChatOrchestrator
from event_assistant.chat.models import ChatRequest
from event_assistant.config import Configuration
from event_assistant.sessions import SessionStore

logger = logging.getLogger(__name__)

_TOKEN_PROPERTY = {
    "type": "string",
    "description": 'JWT obtenido del backend (puede incluir el prefijo "Bearer ").',
}

COMMAND_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "chat_with_event_assistant",
        "description": "Envía un mensaje al asistente de eventos y recibe una respuesta contextual.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "token": _TOKEN_PROPERTY,
                "message": {"type": "string", "description": "Mensaje del usuario para el asistente."},
                "sessionId": {
                    "type": "string",
                    "description": "Identificador opcional de sesión para mantener el contexto.",
                },
            },
            "required": ["message", "token"],
        },
    },
    {
        "name": "reset_event_assistant_session",
        "description": "Limpia el historial de conversación almacenado para una sesión específica.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "token": _TOKEN_PROPERTY,
                "sessionId": {
                    "type": "string",
                    "description": "Sesión a resetear. Si se omite, se deriva del usuario autenticado.",
                },
            },
            "required": ["token"],
        },
    },
    {
        "name": "list_event_domain_tools",
        "description": "Retorna la descripción de las herramientas internas del asistente.",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


class CommandError(Exception):
    """A command was invoked with unusable arguments."""


def default_session_id(user_id: int) -> str:
    return f"mcp-user-{user_id}"


def _text_result(text: str, structured: dict[str, Any] | None = None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def _error_result(message: str) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=message)],
        isError=True,
    )


class CommandServer:
    """Exposes the chat orchestrator and session store as MCP tools."""

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        sessions: SessionStore,
        configuration: Configuration,
    ):
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.configuration = configuration
        server_config = configuration.get_command_server_config()

        self.server: Server = Server(
            server_config.get("name", "event-assistant"),
            version=server_config.get("version", "0.1.0"),
        )
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    def _caller_id(self, args: dict[str, Any]) -> int:
        algorithm = self.configuration.get_auth_config().get("algorithm", "HS256")
        return decode_token(args.get("token"), self.configuration.jwt_secret, [algorithm]).user_id

    @staticmethod
    def _session_id(args: dict[str, Any], user_id: int) -> str:
        session_id = args.get("sessionId")
        if isinstance(session_id, str) and session_id:
            return session_id
        return default_session_id(user_id)

    async def _chat(self, args: dict[str, Any]) -> types.CallToolResult:
        message = args.get("message")
        if not isinstance(message, str) or not message.strip():
            raise CommandError("message is required and must be a non-empty string.")

        user_id = self._caller_id(args)
        session_id = self._session_id(args, user_id)

        result = await self.orchestrator.chat(
            ChatRequest(message=message, user_id=user_id, session_id=session_id)
        )
        return _text_result(
            result.reply,
            {
                "conversationId": session_id,
                "toolsUsed": result.tools_used,
                "userContext": result.user_context.model_dump(
                    mode="json", by_alias=True, exclude_none=True
                ),
            },
        )

    def _reset(self, args: dict[str, Any]) -> types.CallToolResult:
        session_id = self._session_id(args, self._caller_id(args))
        self.sessions.clear(session_id)
        return _text_result(
            f'Conversation history cleared for session "{session_id}".',
            {"conversationId": session_id},
        )

    def _list_domain_tools(self) -> types.CallToolResult:
        declared = self.orchestrator.get_available_tools()
        names = ", ".join(tool["name"] for tool in declared)
        return _text_result(f"{len(declared)} domain tools: {names}", {"tools": declared})

    async def list_tools(self) -> list[types.Tool]:
        return [types.Tool(**definition) for definition in COMMAND_DEFINITIONS]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        """Run one command; every failure comes back as an error result so the stream keeps serving."""
        logger.info("→ Command: %s", name)
        try:
            if name == "chat_with_event_assistant":
                return await self._chat(arguments)
            if name == "reset_event_assistant_session":
                return self._reset(arguments)
            if name == "list_event_domain_tools":
                return self._list_domain_tools()
        except (AuthenticationError, CommandError, ValueError) as e:
            logger.warning("Command %s rejected: %s", name, e)
            return _error_result(str(e))
        except McpError as e:
            logger.error("Command %s failed talking to the language model: %s", name, e.error.message)
            return _error_result(e.error.message)
        except Exception:
            logger.exception("Command %s failed unexpectedly", name)
            return _error_result(f'Command "{name}" failed due to an internal error.')

        return _error_result(f'Tool "{name}" not found.')

    async def serve(self) -> None:
        """Serve MCP over stdin/stdout until the client disconnects."""
        logger.info("Command server ready on stdio")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
        logger.info("Input closed, stopping command server")
