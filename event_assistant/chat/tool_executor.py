"""
Tool Execution Handler

Handles the fragile side of a round:
- Dispatching the model's tool calls by name, one after another
- Turning unknown tools and handler exceptions into structured failures
- Wrapping handler output into the uniform response envelope
- Round limit checks

Nothing raised by a handler escapes this module; failures are fed back to
the model as data so it can narrate them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from event_assistant.tools.results import (
    HANDLER_ERROR,
    ITERATION_LIMIT,
    TOOL_NOT_FOUND,
    failure,
    is_failure,
)

from .logging_utils import (
    log_tool_arguments,
    log_tool_execution_error,
    log_tool_execution_failure,
    log_tool_execution_start,
    log_tool_execution_success,
    log_tool_results,
)
from .models import ToolCallPart, ToolResultPart

if TYPE_CHECKING:
    from event_assistant.config import Configuration
    from event_assistant.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def wrap_result(result: Any) -> dict[str, Any]:
    """Lists become ``{success, data}``, dicts pass through, anything else ``{success, result}``."""
    if isinstance(result, list):
        return {"success": True, "data": result}
    if isinstance(result, dict):
        return result
    return {"success": True, "result": result}


class ToolExecutor:
    """Runs the tool calls of one model reply against the registry."""

    def __init__(self, registry: ToolRegistry, configuration: Configuration):
        self.registry = registry
        self.configuration = configuration
        self._log_conf = configuration.get_chat_service_config().get("logging", {})

    async def _run_one(self, call: ToolCallPart, user_id: int) -> dict[str, Any]:
        if self.registry.get(call.name) is None:
            logger.warning("Model requested unknown tool '%s'", call.name)
            return failure(TOOL_NOT_FOUND, f"Tool {call.name} not found")

        try:
            result = await self.registry.call_tool(call.name, call.args, user_id)
        except Exception as e:
            # Handler bugs and store errors go back to the model, not the caller
            logger.exception("Error executing tool %s", call.name)
            log_tool_execution_error(call.name, str(e))
            return failure(HANDLER_ERROR, str(e) or "Error executing tool")

        return wrap_result(result)

    async def execute_tool_calls(self, calls: list[ToolCallPart], user_id: int) -> list[ToolResultPart]:
        """
        Execute one round of tool calls sequentially, in the order requested.

        Args:
            calls: Tool calls from a single model reply
            user_id: Caller on whose behalf the handlers act

        Returns:
            One result part per call, carrying the call's id and name
        """
        logger.info("→ Tools: executing %d tool calls", len(calls))
        results: list[ToolResultPart] = []

        for i, call in enumerate(calls):
            log_tool_arguments(
                call.name,
                call.args,
                f"call {i + 1}/{len(calls)}",
                self._log_conf.get("tool_arguments_truncate", 500),
            )
            log_tool_execution_start(call.name, i, len(calls))

            envelope = await self._run_one(call, user_id)
            if is_failure(envelope):
                log_tool_execution_failure(call.name, envelope.get("reason", "UNKNOWN"))
            else:
                log_tool_execution_success(call.name, envelope.get("data", envelope))
            log_tool_results(call.name, envelope)

            results.append(ToolResultPart(id=call.id, name=call.name, response=envelope))

        logger.info("← Tools: completed all tool executions")
        return results

    def close_unanswered(self, calls: list[ToolCallPart]) -> list[ToolResultPart]:
        """Answer calls left pending by the round limit so the transcript stays resendable."""
        return [
            ToolResultPart(
                id=call.id,
                name=call.name,
                response=failure(
                    ITERATION_LIMIT,
                    "Se alcanzó el límite de pasos para este mensaje; la herramienta no se ejecutó.",
                ),
            )
            for call in calls
        ]

    def check_tool_hop_limit(self, rounds: int) -> tuple[bool, str | None]:
        """
        Check if the round limit has been reached.

        Returns:
            tuple: (should_stop, warning_message)
        """
        max_rounds = self.configuration.get_max_tool_iterations()
        if rounds >= max_rounds:
            warning_msg = f"Reached maximum tool rounds ({max_rounds}); stopping this turn."
            logger.warning("Maximum tool rounds (%d) reached, stopping", max_rounds)
            return True, warning_msg
        return False, None
