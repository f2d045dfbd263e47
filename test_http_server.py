#!/usr/bin/env python3
"""
Tests for the HTTP adapter using FastAPI's TestClient.
"""

import os
from unittest.mock import patch

import jwt
from fakes import (
    JWT_TEST_SECRET,
    ScriptedModel,
    UnreachableModel,
    build_orchestrator,
    call,
    text,
    tool_calls,
)
from fastapi.testclient import TestClient

from event_assistant.chat.models import Message
from event_assistant.config import Configuration
from event_assistant.http_server import HttpServer


def bearer(user_id: int = 1) -> dict[str, str]:
    token = jwt.encode({"userId": user_id, "role": "CLIENT"}, JWT_TEST_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def make_client(model):
    orchestrator, sessions, _ = build_orchestrator(model)
    server = HttpServer(orchestrator, sessions, Configuration())
    return TestClient(server.app), sessions


def secret_env():
    return patch.dict(os.environ, {"JWT_SECRET": JWT_TEST_SECRET})


def test_health():
    print("Testing HTTP health endpoints...")
    client, _ = make_client(ScriptedModel([]))
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}

    with patch.dict(os.environ):
        os.environ.pop("GEMINI_API_KEY", None)
        body = client.get("/api/ai/health").json()
    assert body["configured"] is False
    assert body["message"]


def test_chat_returns_reply_history_and_conversation_id():
    model = ScriptedModel([text("¡Hola Ana!")])
    client, sessions = make_client(model)

    with secret_env():
        response = client.post("/api/ai/chat", json={"message": "hola"}, headers=bearer())

    assert response.status_code == 200
    body = response.json()
    assert body["reply"] == "¡Hola Ana!"
    assert body["toolsUsed"] == []
    assert body["conversationId"] == "user-1"
    assert body["history"] == [
        {"role": "user", "parts": [{"text": "hola"}]},
        {"role": "model", "parts": [{"text": "¡Hola Ana!"}]},
    ]
    assert len(sessions.get("user-1")) == 2


def test_chat_with_tool_round():
    model = ScriptedModel(
        [
            tool_calls(call("get_available_places", city="Caracas", type="bar")),
            text("Encontré dos bares en Caracas."),
        ]
    )
    client, _ = make_client(model)

    with secret_env():
        body = client.post(
            "/api/ai/chat",
            json={"message": "busca bares", "conversationId": "trip-42"},
            headers=bearer(),
        ).json()

    assert body["conversationId"] == "trip-42"
    assert body["toolsUsed"] == ["get_available_places"]
    assert body["history"][1]["parts"][0]["toolCall"]["name"] == "get_available_places"
    result = body["history"][2]["parts"][0]["toolResult"]
    assert [p["name"] for p in result["response"]["data"]] == ["Cervecería Tovar", "Bar Central"]


def test_reset_and_explicit_history():
    model = ScriptedModel([text("Empecemos de nuevo"), text("Sigo con eso")])
    client, sessions = make_client(model)
    sessions.set("user-1", [Message.user("vieja"), Message.model_text("respuesta vieja")])

    with secret_env():
        client.post(
            "/api/ai/chat",
            json={"message": "hola", "resetConversation": True},
            headers=bearer(),
        )
        client.post(
            "/api/ai/chat",
            json={
                "message": "hola",
                "conversationHistory": [
                    {"role": "user", "parts": [{"text": "antes"}]},
                    {"role": "assistant", "parts": [{"text": "ok"}]},
                ],
            },
            headers=bearer(),
        )

    assert [m.text for m in model.histories[0]] == ["hola"]
    assert [m.role for m in model.histories[1]] == ["user", "model", "user"]
    assert [m.text for m in model.histories[1]] == ["antes", "ok", "hola"]


def test_authentication_is_required():
    client, _ = make_client(ScriptedModel([]))

    with secret_env():
        missing = client.post("/api/ai/chat", json={"message": "hola"})
        assert missing.status_code == 401
        assert missing.json() == {"error": "Unauthorized", "message": "Access denied"}

        bad = client.post(
            "/api/ai/chat", json={"message": "hola"}, headers={"Authorization": "Bearer garbage"}
        )
        assert bad.status_code == 401
        assert bad.json()["message"] == "Invalid or expired token."

        forged = jwt.encode({"userId": 1}, "another-secret-that-is-long-enough!!", algorithm="HS256")
        wrong_key = client.delete(
            "/api/ai/conversation", headers={"Authorization": f"Bearer {forged}"}
        )
        assert wrong_key.status_code == 401


def test_request_validation():
    model = ScriptedModel([])
    client, sessions = make_client(model)
    with secret_env():
        assert client.post("/api/ai/chat", json={"message": ""}, headers=bearer()).status_code == 422
        blank = client.post("/api/ai/chat", json={"message": "   \n\t"}, headers=bearer())
        assert blank.status_code == 422
        too_long = {"message": "hola", "conversationId": "x" * 101}
        assert client.post("/api/ai/chat", json=too_long, headers=bearer()).status_code == 422

    # rejected before the model or the session store is touched
    assert model.call_count == 0
    assert sessions.list_sessions() == []


def test_chat_message_is_trimmed():
    model = ScriptedModel([text("¡Hola!")])
    client, _ = make_client(model)

    with secret_env():
        body = client.post("/api/ai/chat", json={"message": "  hola  "}, headers=bearer()).json()

    assert body["history"][0] == {"role": "user", "parts": [{"text": "hola"}]}


def test_list_tools():
    client, _ = make_client(ScriptedModel([]))
    body = client.get("/api/ai/tools").json()
    assert body["count"] == 8
    assert len(body["tools"]) == 8
    assert all(set(tool) == {"name", "description", "parameters"} for tool in body["tools"])


def test_clear_conversation():
    client, sessions = make_client(ScriptedModel([]))
    sessions.set("user-1", [Message.user("hola")])
    sessions.set("trip-42", [Message.user("hola")])

    with secret_env():
        default = client.delete("/api/ai/conversation", headers=bearer())
        named = client.delete(
            "/api/ai/conversation", params={"conversationId": "trip-42"}, headers=bearer()
        )

    assert default.json() == {
        "message": "Conversation history cleared successfully",
        "conversationId": "user-1",
    }
    assert named.json()["conversationId"] == "trip-42"
    assert sessions.list_sessions() == []


def test_model_failure_maps_to_bad_gateway():
    client, sessions = make_client(UnreachableModel())

    with secret_env():
        response = client.post("/api/ai/chat", json={"message": "hola"}, headers=bearer())

    assert response.status_code == 502
    assert response.json() == {
        "error": "Failed to process AI request",
        "message": "HTTP error: boom",
    }
    assert sessions.get("user-1") is None


if __name__ == "__main__":
    test_health()
    test_chat_returns_reply_history_and_conversation_id()
    test_chat_with_tool_round()
    test_reset_and_explicit_history()
    test_authentication_is_required()
    test_request_validation()
    test_chat_message_is_trimmed()
    test_list_tools()
    test_clear_conversation()
    test_model_failure_maps_to_bad_gateway()
    print("\n✅ All HTTP server tests passed!")
