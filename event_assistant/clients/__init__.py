"""Clients package containing the LLM client."""

from __future__ import annotations

from .llm_client import LanguageModel, LLMClient

__all__ = ["LLMClient", "LanguageModel"]
