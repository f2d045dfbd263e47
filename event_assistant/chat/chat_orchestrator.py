"""
Chat Orchestrator

Main coordination layer for one user turn:
1. Resolves the user context and the running transcript
2. Builds the system instruction once
3. Alternates model calls and tool rounds until the model answers in text
   or the round budget is spent
4. Persists the completed turn into the session store

Only failures talking to the language model escape; every tool problem is
handed back to the model as a structured result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .logging_utils import log_llm_reply, log_system_prompt
from .models import ChatRequest, ChatResult, Message, ModelReply, ToolCallPart, ToolResultPart, UserContext
from .prompts import build_system_instruction
from .replies import MALFORMED_REPLY, NO_RESPONSE_REPLY, fallback_reply, is_malformed
from .tool_executor import ToolExecutor

if TYPE_CHECKING:
    from event_assistant.clients.llm_client import LanguageModel
    from event_assistant.config import Configuration
    from event_assistant.sessions import SessionStore
    from event_assistant.store import DataStore
    from event_assistant.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """
    Conversation engine shared by every entry point.

    1. Takes the user's message
    2. Lets the model call tools, a bounded number of rounds
    3. Sends back the final reply, the tools used and the new transcript
    """

    def __init__(
        self,
        llm: LanguageModel,
        registry: ToolRegistry,
        sessions: SessionStore,
        store: DataStore,
        configuration: Configuration,
    ):
        self.llm = llm
        self.registry = registry
        self.sessions = sessions
        self.store = store
        self.configuration = configuration
        self.chat_conf = configuration.get_chat_service_config()
        self.timezone = configuration.get_event_timezone()
        self.tool_executor = ToolExecutor(registry, configuration)

        # Fail at startup on a bad round budget rather than mid-conversation
        configuration.get_max_tool_iterations()

    async def load_user_context(
        self,
        user_id: int,
        session_id: str | None = None,
        incoming: UserContext | None = None,
    ) -> UserContext:
        """Explicit context wins, then the session cache, then the data store."""
        if incoming is not None:
            return incoming

        if session_id:
            cached = self.sessions.get_context(session_id)
            if cached is not None:
                return cached

        profile = await self.store.get_user_profile(user_id)
        if profile is None:
            logger.info("No profile for user %d, using minimal context", user_id)
            return UserContext(id=user_id, role="CLIENT")

        return UserContext.model_validate(profile.model_dump())

    def _load_history(self, request: ChatRequest) -> list[Message]:
        if request.history is not None:
            return [m.model_copy(deep=True) for m in request.history]
        if request.session_id:
            return self.sessions.get(request.session_id) or []
        return []

    def get_available_tools(self) -> list[dict[str, Any]]:
        """Tool declarations for documentation endpoints (never handlers)."""
        return self.registry.describe()

    async def _ask(
        self,
        system_instruction: str,
        history: list[Message],
        tools: list[dict[str, Any]],
        context: str,
    ) -> ModelReply:
        logger.info("→ LLM: requesting response (%s)", context)
        reply = await self.llm.generate(system_instruction, history, tools)
        log_llm_reply(
            reply,
            context,
            self.chat_conf.get("logging", {}).get("llm_reply_truncate", 500),
        )
        return reply

    def _direct_reply(self, text: str) -> str:
        if not text.strip():
            return NO_RESPONSE_REPLY
        if is_malformed(text, self.registry.names):
            logger.error("Model returned code instead of a tool call: %s", text[:200])
            return MALFORMED_REPLY
        return text

    def _best_text(self, current: str, candidate: str) -> str:
        if candidate.strip() and not is_malformed(candidate, self.registry.names):
            return candidate
        return current

    async def chat(self, request: ChatRequest) -> ChatResult:
        """
        Run one complete turn.

        A round is: execute the pending tool calls, send their results back
        in one batch, read the model's answer. The first round starts by
        sending the user's text. The transcript is only persisted once the
        turn has a final reply.
        """
        user_context = await self.load_user_context(
            request.user_id, request.session_id, request.user_context
        )
        history = self._load_history(request)

        system_instruction = build_system_instruction(user_context, self.timezone)
        log_system_prompt(system_instruction)
        tools = self.registry.get_openai_tools()

        history.append(Message.user(request.message))

        tools_used: list[str] = []
        pending: list[ToolCallPart] = []
        last_result: ToolResultPart | None = None
        best_text = ""
        final: str | None = None
        rounds = 0

        while True:
            should_stop, _ = self.tool_executor.check_tool_hop_limit(rounds)
            if should_stop:
                break
            rounds += 1

            if not pending:
                reply = await self._ask(system_instruction, history, tools, f"round {rounds}")
                if not reply.tool_calls:
                    final = self._direct_reply(reply.text)
                    history.append(Message.model_text(final))
                    break
                history.append(reply.to_message())
                best_text = self._best_text(best_text, reply.text)
                pending = reply.tool_calls

            logger.info("Starting tool round %d", rounds)
            results = await self.tool_executor.execute_tool_calls(pending, request.user_id)
            tools_used.extend(call.name for call in pending)
            last_result = results[-1]
            history.append(Message.tool_results(results))
            pending = []

            reply = await self._ask(
                system_instruction, history, tools, f"tool follow-up {rounds}"
            )
            if not reply.tool_calls:
                if reply.text.strip():
                    final = reply.text
                else:
                    logger.error("Model returned empty response after tool execution")
                    final = fallback_reply(last_result)
                history.append(Message.model_text(final))
                break

            history.append(reply.to_message())
            best_text = self._best_text(best_text, reply.text)
            pending = reply.tool_calls

        if final is None:
            if pending:
                history.append(Message.tool_results(self.tool_executor.close_unanswered(pending)))
            final = best_text or NO_RESPONSE_REPLY
            history.append(Message.model_text(final))

        if request.session_id:
            self.sessions.set(request.session_id, history)
            self.sessions.set_context(request.session_id, user_context)

        logger.info("← Chat: turn finished after %d rounds, tools=%s", rounds, tools_used)
        return ChatResult(
            reply=final,
            tools_used=tools_used,
            history=history,
            session_id=request.session_id,
            user_context=user_context,
        )
