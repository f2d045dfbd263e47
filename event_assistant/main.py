"""
Main application entry points - HTTP server and stdio command stream.

Both entry points build the same engine: one data store, one tool registry,
one session store and one LLM client per process.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Any

from event_assistant.chat import ChatOrchestrator
from event_assistant.chat.logging_utils import set_module_features
from event_assistant.clients import LLMClient
from event_assistant.command_server import CommandServer
from event_assistant.config import Configuration
from event_assistant.http_server import HttpServer
from event_assistant.sessions import InMemorySessionStore
from event_assistant.store import DataStore, SQLiteDataStore, create_data_store
from event_assistant.tools import DateResolver, ToolRegistry, build_registry

logger = logging.getLogger(__name__)

# Module-to-logger mapping; children inherit the parent's level
MODULE_LOGGERS = {
    "chat": ["event_assistant.chat"],
    "tools": ["event_assistant.tools"],
    "connection_pool": ["event_assistant.clients", "httpx", "httpcore"],
    "store": ["event_assistant.store", "aiosqlite"],
    "adapters": ["event_assistant.http_server", "event_assistant.command_server"],
}


def configure_logging(logging_config: dict[str, Any]) -> None:
    """
    Hierarchical logging configuration with per-module levels and feature flags.

    Sets the global level and format, then a level per module group, and
    installs each group's ``enable_features`` for should_log_feature().
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if "format" in logging_config:
        for handler in logging.getLogger().handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setFormatter(logging.Formatter(logging_config["format"]))

    global_level = logging_config.get("level", "WARNING")
    logging.getLogger().setLevel(logging.getLevelName(global_level.upper()))

    for module_name, module_config in logging_config.get("modules", {}).items():
        if not isinstance(module_config, dict):
            continue

        level = module_config.get("level", global_level).upper()
        for logger_name in MODULE_LOGGERS.get(module_name, []):
            logging.getLogger(logger_name).setLevel(level)

        set_module_features(module_name, module_config.get("enable_features", {}))


async def run_session_sweeper(sessions: InMemorySessionStore, interval: float) -> None:
    """Evict idle sessions every ``interval`` seconds until cancelled."""
    logger.info("Session sweeper running every %ss", interval)
    while True:
        await asyncio.sleep(interval)
        sessions.sweep_expired()


@dataclass
class Application:
    """Everything one process shares between requests."""

    configuration: Configuration
    store: DataStore
    registry: ToolRegistry
    sessions: InMemorySessionStore
    llm_client: LLMClient
    orchestrator: ChatOrchestrator
    sweeper: asyncio.Task[None] | None = None

    async def close(self) -> None:
        if self.sweeper is not None:
            self.sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.sweeper
        await self.llm_client.close()
        await self.store.close()


async def build_application(configuration: Configuration) -> Application:
    store_config = configuration.get_data_store_config()
    store = create_data_store(store_config)
    if store_config.get("seed_demo_data") and isinstance(store, SQLiteDataStore):
        await store.seed_demo_data()

    resolver = DateResolver(
        configuration.get_event_timezone(),
        configuration.get_default_event_time(),
    )
    registry = build_registry(store, resolver)
    session_config = configuration.get_session_config()
    sessions = InMemorySessionStore(session_config["max_idle_seconds"])
    llm_client = LLMClient(configuration)
    orchestrator = ChatOrchestrator(llm_client, registry, sessions, store, configuration)

    if not configuration.has_llm_api_key():
        logger.warning("No API key for the active LLM provider; chat requests will fail")

    logger.info("Engine ready - %d tools, timezone %s", len(registry), resolver.timezone.key)
    app = Application(configuration, store, registry, sessions, llm_client, orchestrator)
    if session_config["max_idle_seconds"] is not None:
        interval = session_config.get("sweep_interval_seconds") or session_config["max_idle_seconds"]
        app.sweeper = asyncio.create_task(run_session_sweeper(sessions, interval))
    return app


async def main() -> None:
    """HTTP server with graceful shutdown handling."""
    config = Configuration()
    configure_logging(config.get_logging_config())

    app = await build_application(config)
    server = HttpServer(app.orchestrator, app.sessions, config)

    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logging.info("Received shutdown signal, initiating graceful shutdown...")
        shutdown_event.set()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    try:
        server_task = asyncio.create_task(server.start_server())

        # Wait for either server completion or shutdown signal
        done, pending = await asyncio.wait(
            [server_task, asyncio.create_task(shutdown_event.wait())],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for task in done:
            if task == server_task:
                exception = task.exception()
                if exception is not None:
                    raise exception
    finally:
        await app.close()
        logging.info("Application shutdown complete")


async def commands_main() -> None:
    """Command stream on stdin/stdout until EOF or shutdown."""
    config = Configuration()
    configure_logging(config.get_logging_config())

    app = await build_application(config)
    try:
        await CommandServer(app.orchestrator, app.sessions, config).serve()
    finally:
        await app.close()


def cli_main() -> None:
    """Synchronous CLI entrypoint that runs the HTTP server."""
    asyncio.run(main())


def commands_cli_main() -> None:
    """Synchronous CLI entrypoint that runs the stdio command stream."""
    asyncio.run(commands_main())


if __name__ == "__main__":
    cli_main()
