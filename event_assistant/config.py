"""Configuration management for the event assistant."""

from __future__ import annotations

import logging
import os
from typing import Any, cast

import yaml
from dotenv import load_dotenv

from event_assistant.tools.date_resolver import DEFAULT_TIMEZONE, TimeOfDay

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EVENT_ASSISTANT_CONFIG"

# Map provider names to environment variable names
PROVIDER_KEY_MAP = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class Configuration:
    """YAML defaults + optional override file + environment variables.

    The packaged ``config.yaml`` holds every default. An override file
    (constructor argument or ``EVENT_ASSISTANT_CONFIG``) is deep-merged on top.
    Secrets only ever come from the environment / ``.env``.
    """

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()
        self._default_config = self._load_yaml_config(
            os.path.join(os.path.dirname(__file__), "config.yaml")
        )

        override_path = config_path or os.getenv(CONFIG_ENV_VAR)
        self._current_config = self._default_config
        if override_path:
            override = self._load_yaml_config(override_path)
            self._current_config = self._deep_merge(self._default_config, override)
            logger.info("Loaded configuration overrides from %s", override_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from a YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(f"Configuration file {config_path} must contain a dictionary")
            return cast(dict[str, Any], config)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(
                    cast(dict[str, Any], result[key]), cast(dict[str, Any], value)
                )
            else:
                result[key] = value

        return result

    def _get_config_value(self, path: list[str], default: Any = None) -> Any:
        """Get a configuration value by path, falling back to ``default``."""
        current: Any = self._current_config
        for key in path:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full merged configuration dictionary."""
        return self._current_config

    # ---------- LLM ----------

    def _active_provider(self) -> str:
        return self._get_config_value(["llm", "active"], "gemini")

    def get_llm_config(self) -> dict[str, Any]:
        """Get active LLM provider configuration.

        Returns:
            Active LLM provider configuration dictionary.
        """
        active_provider = self._active_provider()
        providers = self._get_config_value(["llm", "providers"], {})

        if active_provider not in providers:
            raise ValueError(f"Active provider '{active_provider}' not found in providers config")

        return dict(providers[active_provider])

    def _api_key_env(self) -> str:
        active_provider = self._active_provider()
        provider_config = self._get_config_value(["llm", "providers", active_provider], {})
        env_key = provider_config.get("api_key_env") or PROVIDER_KEY_MAP.get(active_provider)
        if not env_key:
            raise ValueError(f"Unknown provider '{active_provider}' - no API key mapping found")
        return env_key

    @property
    def llm_api_key(self) -> str:
        """Get the API key for the active LLM provider.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        env_key = self._api_key_env()
        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables "
                f"for provider '{self._active_provider()}'"
            )
        return api_key

    def get_llm_api_key_or_none(self) -> str | None:
        return os.getenv(self._api_key_env()) or None

    def has_llm_api_key(self) -> bool:
        return self.get_llm_api_key_or_none() is not None

    def get_connection_pool_config(self) -> dict[str, Any]:
        """Get HTTP connection pool configuration with validated defaults."""
        pool = self._get_config_value(["connection_pool"], {})

        config = {
            "max_connections": pool.get("max_connections", 20),
            "max_keepalive_connections": pool.get("max_keepalive_connections", 10),
            "keepalive_expiry_seconds": pool.get("keepalive_expiry_seconds", 30.0),
            "request_timeout_seconds": pool.get("request_timeout_seconds", 60.0),
        }

        if config["max_connections"] < 1:
            raise ValueError("max_connections must be at least 1")
        if config["max_keepalive_connections"] > config["max_connections"]:
            raise ValueError("max_keepalive_connections must be <= max_connections")
        if config["request_timeout_seconds"] <= 0:
            raise ValueError("request_timeout_seconds must be positive")

        return config

    # ---------- Chat engine ----------

    def get_chat_service_config(self) -> dict[str, Any]:
        """Get chat service configuration."""
        return self._get_config_value(["chat", "service"], {})

    def get_max_tool_iterations(self) -> int:
        """Get the maximum number of model/tool rounds per turn.

        Returns:
            Maximum number of rounds (default: 5).
        """
        max_iterations = self.get_chat_service_config().get("max_tool_iterations", 5)

        # bool is an int subclass; reject it explicitly
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 1:
            raise ValueError("max_tool_iterations must be a positive integer")

        return max_iterations

    def get_event_timezone(self) -> str:
        """Timezone used to resolve dates. EVENT_TIMEZONE wins over the YAML value."""
        return os.getenv("EVENT_TIMEZONE") or self._get_config_value(
            ["chat", "events", "timezone"], DEFAULT_TIMEZONE
        )

    def get_default_event_time(self) -> TimeOfDay:
        raw = str(self._get_config_value(["chat", "events", "default_time"], "20:00"))
        try:
            hour_text, minute_text = raw.split(":")
            value = TimeOfDay(int(hour_text), int(minute_text))
        except ValueError as e:
            raise ValueError(f"default_time must look like HH:MM, got '{raw}'") from e
        if not (0 <= value.hour <= 23 and 0 <= value.minute <= 59):
            raise ValueError(f"default_time out of range: '{raw}'")
        return value

    def get_session_config(self) -> dict[str, Any]:
        """Session store settings; ``max_idle_seconds`` null means never expire."""
        config = dict(self._get_config_value(["chat", "sessions"], {}))
        max_idle = config.get("max_idle_seconds")
        if max_idle is not None and max_idle <= 0:
            raise ValueError("max_idle_seconds must be positive or null")
        interval = config.get("sweep_interval_seconds")
        if interval is not None and interval <= 0:
            raise ValueError("sweep_interval_seconds must be positive or null")
        config.setdefault("max_idle_seconds", None)
        return config

    # ---------- Adapters ----------

    def get_http_config(self) -> dict[str, Any]:
        """Get HTTP adapter configuration."""
        return self._get_config_value(["http"], {})

    def get_command_server_config(self) -> dict[str, Any]:
        """Get command-stream adapter configuration."""
        return self._get_config_value(["command_server"], {})

    def get_auth_config(self) -> dict[str, Any]:
        return self._get_config_value(["auth"], {})

    @property
    def jwt_secret(self) -> str:
        """Secret used to verify bearer tokens.

        Raises:
            ValueError: If JWT_SECRET is not set.
        """
        secret = os.getenv("JWT_SECRET")
        if not secret:
            raise ValueError("JWT_SECRET not found in environment variables")
        return secret

    # ---------- Storage / logging ----------

    def get_data_store_config(self) -> dict[str, Any]:
        """Get domain data store configuration."""
        config = dict(self._get_config_value(["data_store"], {}))
        if os.getenv("EVENT_ASSISTANT_DB_PATH"):
            config["path"] = os.environ["EVENT_ASSISTANT_DB_PATH"]
        return config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration."""
        return self._get_config_value(["logging"], {})
