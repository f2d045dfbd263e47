"""
Shared doubles for the test modules: scripted language models, a fixed clock
and a small seeded catalogue.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from mcp import McpError, types

from event_assistant.chat import ChatOrchestrator
from event_assistant.chat.models import Message, ModelReply, ToolCallPart
from event_assistant.config import Configuration
from event_assistant.sessions import InMemorySessionStore
from event_assistant.store import Community, Event, InMemoryDataStore, Place, Review, UserProfile
from event_assistant.tools import DateResolver, build_registry

CARACAS = ZoneInfo("America/Caracas")
# A Monday
FIXED_NOW = datetime(2025, 3, 10, 9, 0, tzinfo=CARACAS)
JWT_TEST_SECRET = "test-secret-key-with-at-least-32-bytes!!"


def fixed_resolver() -> DateResolver:
    return DateResolver("America/Caracas", clock=lambda: FIXED_NOW)


def call(name: str, **args: Any) -> ToolCallPart:
    return ToolCallPart(name=name, args=args)


def text(reply: str) -> ModelReply:
    return ModelReply(text=reply, model="scripted")


def tool_calls(*calls: ToolCallPart, reply: str = "") -> ModelReply:
    return ModelReply(text=reply, tool_calls=list(calls), model="scripted")


class ScriptedModel:
    """Replays canned replies in order and records what it was sent."""

    def __init__(self, replies: list[ModelReply]):
        self.replies = list(replies)
        self.histories: list[list[Message]] = []
        self.system_instructions: list[str] = []
        self.tools: list[dict[str, Any]] = []

    async def generate(self, system_instruction, history, tools):
        self.histories.append([m.model_copy(deep=True) for m in history])
        self.system_instructions.append(system_instruction)
        self.tools = tools
        if not self.replies:
            raise AssertionError("model called more often than scripted")
        return self.replies.pop(0)

    @property
    def call_count(self) -> int:
        return len(self.histories)


class LoopingModel(ScriptedModel):
    """Adversarial model that always asks for one more tool call."""

    def __init__(self):
        super().__init__([])

    async def generate(self, system_instruction, history, tools):
        self.histories.append(list(history))
        self.system_instructions.append(system_instruction)
        return tool_calls(call("get_available_places", city="Caracas"))


class UnreachableModel(ScriptedModel):
    """Simulates a language-model transport failure."""

    def __init__(self):
        super().__init__([])

    async def generate(self, system_instruction, history, tools):
        raise McpError(error=types.ErrorData(code=types.INTERNAL_ERROR, message="HTTP error: boom"))


def seeded_store() -> InMemoryDataStore:
    store = InMemoryDataStore()
    store.add_user(
        UserProfile(id=1, name="Ana", last_name="Pérez", city="Caracas", role="CLIENT", membership="VIP")
    )
    store.add_user(UserProfile(id=2, name="Luis", city=None, role="MARKET"))

    store.add_place(
        Place(
            id=17,
            name="Cervecería Tovar",
            direction="Las Mercedes",
            city="Caracas",
            capacity=80,
            type="bar",
            status="ACCEPTED",
            created_at=datetime(2025, 1, 2, tzinfo=UTC),
        )
    )
    store.add_place(
        Place(
            id=22,
            name="Bar Central",
            city="Caracas",
            capacity=50,
            type="bar",
            status="ACCEPTED",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
        )
    )
    store.add_place(
        Place(
            id=30,
            name="Galpón Pendiente",
            city="Caracas",
            capacity=300,
            type="salon",
            status="PENDING",
        )
    )
    store.add_place(
        Place(
            id=3,
            name="Restaurante Urrutia",
            direction="Altamira",
            city="Caracas",
            capacity=120,
            type="restaurant",
            status="ACCEPTED",
            description="Cocina criolla en Altamira",
            created_at=datetime(2024, 12, 1, tzinfo=UTC),
        )
    )

    store.add_review(Review(id=1, user_id=2, place_id=17, calification=5, comment="Buena cerveza"))
    store.add_review(Review(id=2, user_id=1, place_id=17, calification=4, comment="Algo ruidoso"))

    store.add_event(
        Event(
            id=5,
            name="Cumpleaños de Ana",
            time_begin=datetime(2025, 3, 20, 23, 0, tzinfo=UTC),
            place_id=17,
            organizer_id=1,
        )
    )
    store.add_event(
        Event(
            id=6,
            name="Noche de trivia",
            time_begin=datetime(2025, 3, 15, 23, 0, tzinfo=UTC),
            place_id=22,
            organizer_id=2,
        )
    )
    store.add_ticket(user_id=1, event_id=6)

    store.add_community(Community(id=3, name="Amantes del jazz", created_by=2))
    store.add_event(
        Event(
            id=7,
            name="Jam de jazz",
            time_begin=datetime(2025, 3, 25, 23, 30, tzinfo=UTC),
            place_id=22,
            organizer_id=2,
            community_id=3,
        )
    )
    return store


def build_orchestrator(
    model: ScriptedModel,
    store: InMemoryDataStore | None = None,
    sessions: InMemorySessionStore | None = None,
) -> tuple[ChatOrchestrator, InMemorySessionStore, InMemoryDataStore]:
    store = store or seeded_store()
    sessions = sessions or InMemorySessionStore()
    registry = build_registry(store, fixed_resolver())
    orchestrator = ChatOrchestrator(model, registry, sessions, store, Configuration())
    return orchestrator, sessions, store
