"""
Chat Service Module

Conversation engine: transcript models, the tool-calling loop and its guards.
"""

from .chat_orchestrator import ChatOrchestrator
from .models import ChatRequest, ChatResult, Message, UserContext

__all__ = ["ChatOrchestrator", "ChatRequest", "ChatResult", "Message", "UserContext"]
