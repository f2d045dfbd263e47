"""
Chat Logging Utilities

Shared logging helpers with per-module feature flags. Flags are installed by
``configure_logging`` in main.py from the ``logging.modules`` config section.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ModelReply

logger = logging.getLogger(__name__)

_module_features: dict[str, dict[str, bool]] = {}


def set_module_features(module: str, features: dict[str, bool]) -> None:
    _module_features[module] = dict(features)


def should_log_feature(module: str, feature: str) -> bool:
    """Check if a specific logging feature is enabled for a module."""
    return _module_features.get(module, {}).get(feature, False)


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def log_llm_reply(reply: ModelReply, context: str, truncate_length: int = 500) -> None:
    """
    Log a model reply when the ``chat.llm_replies`` feature is enabled.

    Args:
        reply: Parsed model reply (text and tool calls)
        context: Descriptive context for the log entry
        truncate_length: Maximum characters of reply text to log
    """
    if not should_log_feature("chat", "llm_replies"):
        return

    log_parts = [f"LLM Reply ({context}):"]
    if reply.text:
        log_parts.append(f"Content: {_truncate(reply.text, truncate_length)}")
    if reply.tool_calls:
        log_parts.append(f"Tool calls: {len(reply.tool_calls)}")
        for i, call in enumerate(reply.tool_calls):
            log_parts.append(f"  [{i}] {call.name}")
    log_parts.append(f"Model: {reply.model or 'unknown'}")

    logger.info(" | ".join(log_parts))


def log_system_prompt(prompt: str) -> None:
    if should_log_feature("chat", "system_prompt"):
        logger.info("System prompt being used:\n%s", prompt)
    else:
        logger.debug("System prompt logging disabled in configuration")


def log_tool_execution_start(tool_name: str, call_index: int = 0, total_calls: int = 1) -> None:
    """
    Log the start of tool execution with consistent formatting.

    Args:
        tool_name: Name of the tool being executed
        call_index: Index of current call (0-based)
        total_calls: Total number of calls in the round
    """
    if total_calls > 1:
        logger.info("→ Tool[%s]: executing call %d/%d", tool_name, call_index + 1, total_calls)
    else:
        logger.info("→ Tool[%s]: executing", tool_name)


def log_tool_execution_success(tool_name: str, result: Any) -> None:
    size = len(result) if isinstance(result, list | dict) else 1
    logger.info("← Tool[%s]: success, %d item(s)", tool_name, size)


def log_tool_execution_failure(tool_name: str, reason: str) -> None:
    logger.info("← Tool[%s]: returned failure %s", tool_name, reason)


def log_tool_execution_error(tool_name: str, error_msg: str) -> None:
    logger.error("← Tool[%s]: failed with error: %s", tool_name, error_msg)


def log_tool_args_error(tool_name: str, error: Exception) -> None:
    """Log malformed tool arguments sent by the model."""
    logger.error("Malformed JSON arguments for %s: %s", tool_name, error)


def log_tool_arguments(
    tool_name: str, arguments: dict[str, Any], context: str, truncate_length: int = 500
) -> None:
    if not should_log_feature("chat", "tool_arguments"):
        return
    logger.info("→ Tool[%s]: arguments (%s): %s", tool_name, context, _truncate(str(arguments), truncate_length))


def log_tool_results(tool_name: str, results: Any, truncate_length: int = 200) -> None:
    if not should_log_feature("chat", "tool_results"):
        return
    logger.info("← Tool[%s]: results: %s", tool_name, _truncate(str(results), truncate_length))


def log_llm_request_start(request_id: str, provider: str, model: str) -> float:
    """Log the start of an LLM request and return start time."""
    start_time = time.monotonic()
    logger.debug("LLM request started: request_id=%s, provider=%s, model=%s", request_id, provider, model)
    return start_time


def log_llm_request_complete(request_id: str, start_time: float, success: bool = True) -> None:
    elapsed_ms = (time.monotonic() - start_time) * 1000
    status = "ok" if success else "failed"
    logger.info("LLM request %s: request_id=%s, elapsed=%.2fms", status, request_id, elapsed_ms)
