#!/usr/bin/env python3
"""
Tests for the MCP command server, driven through an in-memory client session.
"""

import asyncio
import os
from unittest.mock import patch

import jwt
from fakes import JWT_TEST_SECRET, ScriptedModel, UnreachableModel, build_orchestrator, seeded_store, text
from mcp.shared.memory import create_connected_server_and_client_session

from event_assistant.chat.models import Message
from event_assistant.command_server import CommandServer
from event_assistant.config import Configuration


def token(user_id: int = 1) -> str:
    return jwt.encode({"userId": user_id}, JWT_TEST_SECRET, algorithm="HS256")


def make_server(model=None, store=None):
    orchestrator, sessions, _ = build_orchestrator(model or ScriptedModel([]), store=store)
    return CommandServer(orchestrator, sessions, Configuration()), sessions


def run_session(server: CommandServer, scenario):
    """Connect a client to the server and run ``scenario(client)`` against it."""

    async def run():
        async with create_connected_server_and_client_session(server.server) as client:
            return await scenario(client)

    with patch.dict(os.environ, {"JWT_SECRET": JWT_TEST_SECRET}):
        return asyncio.run(run())


def call_tool(server, name, arguments):
    return run_session(server, lambda client: client.call_tool(name, arguments))


class LockedStore:
    """Seeded store whose profile lookup fails like a busy database."""

    def __init__(self):
        self.inner = seeded_store()
        self.fail = True

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def get_user_profile(self, user_id):
        if self.fail:
            raise RuntimeError("database is locked")
        return await self.inner.get_user_profile(user_id)


def test_initialization_options_and_list_tools():
    print("Testing command server handshake...")
    server, _ = make_server()

    options = server.server.create_initialization_options()
    assert options.server_name == "event-assistant"
    assert options.server_version == "0.1.0"
    assert options.capabilities.tools is not None

    async def scenario(client):
        await client.send_ping()
        return await client.list_tools()

    listed = run_session(server, scenario)
    names = [tool.name for tool in listed.tools]
    assert names == [
        "chat_with_event_assistant",
        "reset_event_assistant_session",
        "list_event_domain_tools",
    ]
    chat_schema = listed.tools[0].inputSchema
    assert set(chat_schema["required"]) == {"message", "token"}
    assert "Bearer" in chat_schema["properties"]["token"]["description"]


def test_chat_command():
    model = ScriptedModel([text("¡Hola Ana!")])
    server, sessions = make_server(model)

    result = call_tool(
        server, "chat_with_event_assistant", {"token": f"Bearer {token()}", "message": "hola"}
    )

    assert result.isError is False
    assert result.content[0].text == "¡Hola Ana!"
    assert result.structuredContent["conversationId"] == "mcp-user-1"
    assert result.structuredContent["toolsUsed"] == []
    assert result.structuredContent["userContext"]["city"] == "Caracas"
    assert len(sessions.get("mcp-user-1")) == 2


def test_chat_command_uses_explicit_session():
    model = ScriptedModel([text("ok")])
    server, sessions = make_server(model)

    result = call_tool(
        server,
        "chat_with_event_assistant",
        {"token": token(), "message": "hola", "sessionId": "cli-7"},
    )

    assert result.structuredContent["conversationId"] == "cli-7"
    assert sessions.get("cli-7") is not None


def test_chat_command_failures():
    server, _ = make_server()

    missing_token = call_tool(server, "chat_with_event_assistant", {"message": "hola"})
    assert missing_token.isError is True
    assert "token" in missing_token.content[0].text

    empty_message = call_tool(server, "chat_with_event_assistant", {"token": token(), "message": "  "})
    assert empty_message.isError is True
    assert empty_message.content[0].text == "message is required and must be a non-empty string."

    bad_token = call_tool(server, "chat_with_event_assistant", {"token": "garbage", "message": "hola"})
    assert bad_token.isError is True
    assert bad_token.content[0].text == "Invalid or expired token."

    unknown = call_tool(server, "teleport", {})
    assert unknown.isError is True
    assert unknown.content[0].text == 'Tool "teleport" not found.'

    offline, _ = make_server(UnreachableModel())
    failed = call_tool(offline, "chat_with_event_assistant", {"token": token(), "message": "hola"})
    assert failed.isError is True
    assert failed.content[0].text == "HTTP error: boom"


def test_unexpected_failure_keeps_the_stream_serving():
    store = LockedStore()
    server, _ = make_server(ScriptedModel([text("Ya estoy de vuelta")]), store=store)
    arguments = {"token": token(), "message": "hola"}

    async def scenario(client):
        broken = await client.call_tool("chat_with_event_assistant", arguments)
        store.fail = False
        await client.send_ping()
        recovered = await client.call_tool("chat_with_event_assistant", arguments)
        return broken, recovered

    broken, recovered = run_session(server, scenario)

    assert broken.isError is True
    assert broken.content[0].text == 'Command "chat_with_event_assistant" failed due to an internal error.'
    # internal details stay in the log
    assert "locked" not in broken.content[0].text
    assert recovered.isError is False
    assert recovered.content[0].text == "Ya estoy de vuelta"


def test_reset_and_domain_tools():
    server, sessions = make_server()
    sessions.set("mcp-user-1", [Message.user("hola")])

    reset = call_tool(server, "reset_event_assistant_session", {"token": token()})
    assert reset.content[0].text == 'Conversation history cleared for session "mcp-user-1".'
    assert sessions.get("mcp-user-1") is None

    tools = call_tool(server, "list_event_domain_tools", {})
    declared = tools.structuredContent["tools"]
    assert len(declared) == 8
    assert "create_event" in {tool["name"] for tool in declared}
    assert tools.content[0].text.startswith("8 domain tools: ")


if __name__ == "__main__":
    test_initialization_options_and_list_tools()
    test_chat_command()
    test_chat_command_uses_explicit_session()
    test_chat_command_failures()
    test_unexpected_failure_keeps_the_stream_serving()
    test_reset_and_domain_tools()
    print("\n✅ All command server tests passed!")
