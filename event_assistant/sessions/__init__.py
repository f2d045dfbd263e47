"""Conversation session storage shared by both adapters."""

from __future__ import annotations

from .session_store import InMemorySessionStore, SessionStore

__all__ = ["InMemorySessionStore", "SessionStore"]
