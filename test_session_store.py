#!/usr/bin/env python3
"""
Tests for the in-memory session store.
"""

from event_assistant.chat.models import Message, UserContext
from event_assistant.sessions import InMemorySessionStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_missing_session_returns_none():
    print("Testing empty session store...")
    store = InMemorySessionStore()
    assert store.get("nope") is None
    assert store.get_context("nope") is None
    assert len(store) == 0


def test_reads_and_writes_are_copies():
    store = InMemorySessionStore()
    history = [Message.user("hola"), Message.model_text("¡Hola!")]
    store.set("s1", history)

    # mutating the caller's list must not leak into the cache
    history.append(Message.user("otra"))
    cached = store.get("s1")
    assert [m.text for m in cached] == ["hola", "¡Hola!"]

    cached[0].parts[0].text = "cambiado"
    assert store.get("s1")[0].text == "hola"


def test_last_write_wins():
    store = InMemorySessionStore()
    store.set("s1", [Message.user("primero")])
    store.set("s1", [Message.user("segundo")])
    assert [m.text for m in store.get("s1")] == ["segundo"]


def test_clear_removes_history_and_context():
    store = InMemorySessionStore()
    store.set("s1", [Message.user("hola")])
    store.set_context("s1", UserContext(id=1, city="Caracas"))
    store.set("s2", [Message.user("otra sesión")])

    assert store.get_context("s1").city == "Caracas"
    assert store.list_sessions() == ["s1", "s2"]

    store.clear("s1")
    assert store.get("s1") is None
    assert store.get_context("s1") is None
    assert store.list_sessions() == ["s2"]

    # clearing an unknown session is a no-op
    store.clear("unknown")


def test_idle_sessions_expire_lazily():
    clock = FakeClock()
    store = InMemorySessionStore(max_idle_seconds=60, clock=clock)
    store.set("s1", [Message.user("hola")])
    store.set_context("s1", UserContext(id=1))

    clock.now += 30
    assert store.get("s1") is not None

    clock.now += 61
    assert store.get("s1") is None
    assert store.get_context("s1") is None


def test_sweep_expired_drops_only_idle_sessions():
    clock = FakeClock()
    store = InMemorySessionStore(max_idle_seconds=60, clock=clock)
    store.set("old", [Message.user("viejo")])
    clock.now += 50
    store.set("fresh", [Message.user("nuevo")])
    clock.now += 20

    assert store.sweep_expired() == 1
    assert store.list_sessions() == ["fresh"]


def test_sessions_never_expire_without_limit():
    clock = FakeClock()
    store = InMemorySessionStore(clock=clock)
    store.set("s1", [Message.user("hola")])
    clock.now += 10**6
    assert store.sweep_expired() == 0
    assert store.get("s1") is not None


if __name__ == "__main__":
    test_missing_session_returns_none()
    test_reads_and_writes_are_copies()
    test_last_write_wins()
    test_clear_removes_history_and_context()
    test_idle_sessions_expire_lazily()
    test_sweep_expired_drops_only_idle_sessions()
    test_sessions_never_expire_without_limit()
    print("\n✅ All session store tests passed!")
