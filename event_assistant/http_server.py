"""
HTTP Server for the Event Assistant

Thin transport layer in front of the chat orchestrator: authenticates the
caller from the bearer token, maps the request body onto a chat turn and
serializes the result. All conversation logic lives in ChatOrchestrator.
"""

from __future__ import annotations

import logging
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mcp import McpError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from event_assistant.auth import AuthenticationError, CallerIdentity, decode_token
from event_assistant.chat import ChatOrchestrator
from event_assistant.chat.models import ChatRequest, Message, dump_history
from event_assistant.config import Configuration
from event_assistant.sessions import SessionStore

logger = logging.getLogger(__name__)


class ChatPayload(BaseModel):
    """Body of POST /api/ai/chat."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    message: str = Field(min_length=1)
    conversation_id: str | None = Field(default=None, max_length=100)
    reset_conversation: bool = False
    conversation_history: list[Message] | None = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reply: str
    tools_used: list[str]
    history: list[dict[str, Any]]
    conversation_id: str


def default_session_id(user_id: int) -> str:
    return f"user-{user_id}"


class HttpServer:
    """
    HTTP communication server.

    This class only handles:
    - Bearer-token authentication
    - Request validation and routing
    - Mapping engine failures onto HTTP status codes
    """

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        sessions: SessionStore,
        configuration: Configuration,
    ):
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.configuration = configuration
        self.http_config = configuration.get_http_config()
        self.app = self._create_app()

    def _authenticate(self, authorization: str | None) -> CallerIdentity:
        if not authorization:
            raise AuthenticationError("Access denied")
        algorithm = self.configuration.get_auth_config().get("algorithm", "HS256")
        return decode_token(authorization, self.configuration.jwt_secret, [algorithm])

    def _create_app(self) -> FastAPI:
        """Create and configure FastAPI app."""
        app = FastAPI(title="Event Assistant")

        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.http_config.get("cors_origins", ["*"]),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        async def current_caller(authorization: str | None = Header(default=None)) -> CallerIdentity:
            return self._authenticate(authorization)

        @app.exception_handler(AuthenticationError)
        async def auth_error(_request: Request, exc: AuthenticationError):  # type: ignore
            return JSONResponse(status_code=401, content={"error": "Unauthorized", "message": str(exc)})

        @app.exception_handler(McpError)
        async def llm_error(_request: Request, exc: McpError):  # type: ignore
            logger.error("Chat turn failed talking to the language model: %s", exc.error.message)
            return JSONResponse(
                status_code=502,
                content={"error": "Failed to process AI request", "message": exc.error.message},
            )

        @app.get("/health")
        async def health():  # type: ignore
            return {"status": "healthy"}

        @app.post("/api/ai/chat")
        async def chat(  # type: ignore
            payload: ChatPayload, caller: CallerIdentity = Depends(current_caller)
        ) -> dict[str, Any]:
            session_id = payload.conversation_id or default_session_id(caller.user_id)

            if payload.reset_conversation:
                logger.info("Resetting conversation '%s' before chat", session_id)
                self.sessions.clear(session_id)

            result = await self.orchestrator.chat(
                ChatRequest(
                    message=payload.message,
                    user_id=caller.user_id,
                    session_id=session_id,
                    history=payload.conversation_history,
                )
            )
            return ChatResponse(
                reply=result.reply,
                tools_used=result.tools_used,
                history=dump_history(result.history),
                conversation_id=session_id,
            ).model_dump(by_alias=True)

        @app.get("/api/ai/tools")
        async def list_tools():  # type: ignore
            tools = self.orchestrator.get_available_tools()
            return {"tools": tools, "count": len(tools)}

        @app.delete("/api/ai/conversation")
        async def clear_conversation(  # type: ignore
            conversation_id: str | None = Query(default=None, alias="conversationId"),
            caller: CallerIdentity = Depends(current_caller),
        ):
            session_id = conversation_id or default_session_id(caller.user_id)
            self.sessions.clear(session_id)
            return {
                "message": "Conversation history cleared successfully",
                "conversationId": session_id,
            }

        @app.get("/api/ai/health")
        async def ai_health():  # type: ignore
            configured = self.configuration.has_llm_api_key()
            return {
                "configured": configured,
                "message": "AI service is ready" if configured else "LLM API key not configured",
            }

        return app

    async def start_server(self) -> None:
        """Serve until uvicorn is told to exit."""
        host = self.http_config.get("host", "0.0.0.0")
        port = self.http_config.get("port", 8000)

        logger.info("Starting HTTP server on %s:%s", host, port)

        server_config = uvicorn.Config(self.app, host=host, port=port, log_level="info")
        server = uvicorn.Server(server_config)
        await server.serve()
