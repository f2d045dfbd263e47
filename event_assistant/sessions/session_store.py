#!/usr/bin/env python3
"""
Session Store

Keyed cache of conversation history and user context shared by the HTTP and
command-stream adapters. One instance per process, injected into the chat
orchestrator.

CONFIG: chat.sessions.max_idle_seconds (null = never expire)
PURPOSE: Low-latency reuse of conversation state across requests
FEATURES: Last-write-wins, lazy idle expiry, explicit sweep
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable
from typing import Protocol

from event_assistant.chat.models import Message, UserContext

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Protocol for session backends (in-process map today, networked cache later)."""

    def get(self, session_id: str) -> list[Message] | None: ...

    def set(self, session_id: str, history: list[Message]) -> None: ...

    def get_context(self, session_id: str) -> UserContext | None: ...

    def set_context(self, session_id: str, context: UserContext) -> None: ...

    def clear(self, session_id: str) -> None: ...


class InMemorySessionStore:
    """
    In-process session map.

    Writes replace the whole entry, so concurrent turns on the same session id
    resolve as last-write-wins. Copies are handed out on read and taken on
    write so callers can never mutate cached state mid-turn.
    """

    def __init__(
        self,
        max_idle_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._histories: dict[str, list[Message]] = {}
        self._contexts: dict[str, UserContext] = {}
        self._touched: dict[str, float] = {}
        self._max_idle = max_idle_seconds
        self._clock = clock

    def _touch(self, session_id: str) -> None:
        self._touched[session_id] = self._clock()

    def _expired(self, session_id: str) -> bool:
        if self._max_idle is None:
            return False
        touched = self._touched.get(session_id)
        return touched is not None and self._clock() - touched > self._max_idle

    def _evict_if_expired(self, session_id: str) -> None:
        if self._expired(session_id):
            logger.info("Session '%s' expired after idle timeout", session_id)
            self.clear(session_id)

    def get(self, session_id: str) -> list[Message] | None:
        self._evict_if_expired(session_id)
        history = self._histories.get(session_id)
        return copy.deepcopy(history) if history is not None else None

    def set(self, session_id: str, history: list[Message]) -> None:
        self._histories[session_id] = copy.deepcopy(history)
        self._touch(session_id)

    def get_context(self, session_id: str) -> UserContext | None:
        self._evict_if_expired(session_id)
        context = self._contexts.get(session_id)
        return context.model_copy() if context is not None else None

    def set_context(self, session_id: str, context: UserContext) -> None:
        self._contexts[session_id] = context.model_copy()
        self._touch(session_id)

    def clear(self, session_id: str) -> None:
        """Remove both history and context for the session."""
        self._histories.pop(session_id, None)
        self._contexts.pop(session_id, None)
        self._touched.pop(session_id, None)

    def list_sessions(self) -> list[str]:
        return sorted(set(self._histories) | set(self._contexts))

    def sweep_expired(self) -> int:
        """Drop every idle session; returns how many were removed."""
        expired = [sid for sid in list(self._touched) if self._expired(sid)]
        for session_id in expired:
            self.clear(session_id)
        if expired:
            logger.info("Swept %d idle sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self.list_sessions())
