"""Configuration management for the chat relay."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

CONFIG_PATH_ENV = "CHAT_RELAY_CONFIG"

# Map provider names to environment variable names
PROVIDER_KEY_MAP = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "groq": "GROQ_API_KEY",
}

VALID_MODES = ("plain", "structured")


class Configuration:
    """Manages configuration and environment variables for the relay."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables.

        Args:
            config_path: YAML file to load. Falls back to the
                ``CHAT_RELAY_CONFIG`` environment variable, then to the
                ``config.yaml`` shipped with the package.
        """
        self.load_env()  # Load .env for API keys
        self.config_path = (
            config_path
            or os.getenv(CONFIG_PATH_ENV)
            or os.path.join(os.path.dirname(__file__), "config.yaml")
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def active_provider(self) -> str:
        return self._config.get("llm", {}).get("active", "openai")

    @property
    def llm_api_key(self) -> str | None:
        """Get the API key for the active LLM provider.

        Returns:
            The API key, or None when the environment variable is unset.
            A missing key is reported per call rather than at startup.

        Raises:
            ValueError: If the active provider has no API key mapping.
        """
        active_provider = self.active_provider

        env_key = PROVIDER_KEY_MAP.get(active_provider)
        if not env_key:
            raise ValueError(
                f"Unknown provider '{active_provider}' - no API key mapping found"
            )

        return os.getenv(env_key) or None

    def get_llm_config(self) -> dict[str, Any]:
        """Get active LLM provider configuration from YAML.

        Returns:
            Active LLM provider configuration dictionary.

        Raises:
            ValueError: If the provider is missing or incompletely configured.
        """
        providers = self._config.get("llm", {}).get("providers", {})
        active_provider = self.active_provider

        if active_provider not in providers:
            raise ValueError(
                f"Active provider '{active_provider}' not found in providers config"
            )

        provider_config = providers[active_provider]
        for key in ["base_url", "model"]:
            if key not in provider_config:
                raise ValueError(
                    f"llm.providers.{active_provider}.{key} must be explicitly "
                    "configured in config.yaml"
                )

        temperature = provider_config.get("temperature", 0.7)
        if not 0 <= temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")

        return {**provider_config, "http_client": self.get_http_client_config()}

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client configuration for the active LLM provider.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If HTTP client parameters are invalid.
        """
        providers = self._config.get("llm", {}).get("providers", {})
        http_config = {**providers.get(self.active_provider, {}).get("http_client", {})}

        max_conn = http_config.setdefault("max_connections", 100)
        max_keepalive = http_config.setdefault("max_keepalive", 20)
        http_config.setdefault("connect_timeout", 10.0)
        http_config.setdefault("read_timeout", None)
        http_config.setdefault("write_timeout", 10.0)
        http_config.setdefault("pool_timeout", 10.0)

        if max_conn < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        if max_keepalive > max_conn:
            raise ValueError("http_client.max_keepalive must be <= max_connections")

        for key in ["connect_timeout", "read_timeout", "write_timeout", "pool_timeout"]:
            value = http_config[key]
            if value is not None and value <= 0:
                raise ValueError(f"http_client.{key} must be positive or null")

        return http_config

    def get_relay_config(self) -> dict[str, Any]:
        """Get relay mode, flush policies and prompt overrides from YAML.

        Returns:
            Dictionary with ``mode``, ``flush`` (per mode) and ``prompts``.

        Raises:
            ValueError: If the mode or a flush policy is invalid.
        """
        relay_config = self._config.get("relay", {})

        mode = relay_config.get("mode", "plain")
        if mode not in VALID_MODES:
            raise ValueError(f"relay.mode must be one of: {list(VALID_MODES)}")

        flush_config = relay_config.get("flush", {})
        flush: dict[str, dict[str, Any]] = {}
        for name in VALID_MODES:
            policy = flush_config.get(name, {})
            max_chars = policy.get("max_buffer_chars", 100 if name == "plain" else 8000)
            if not isinstance(max_chars, int) or max_chars < 1:
                raise ValueError(
                    f"relay.flush.{name}.max_buffer_chars must be a positive integer"
                )
            flush[name] = {
                "sentence_end": bool(policy.get("sentence_end", name == "plain")),
                "paragraph_break": bool(policy.get("paragraph_break", name == "plain")),
                "max_buffer_chars": max_chars,
            }

        prompts = relay_config.get("prompts") or {}

        return {
            "mode": mode,
            "flush": flush,
            "prompts": {name: prompts.get(name) for name in VALID_MODES},
        }

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration from YAML.

        Returns:
            Server configuration with host, port and CORS settings.
        """
        server_config = self._config.get("server", {})
        cors = server_config.get("cors", {})

        port = int(os.getenv("PORT", server_config.get("port", 4000)))
        if not 0 < port < 65536:
            raise ValueError("server.port must be between 1 and 65535")

        return {
            "host": server_config.get("host", "0.0.0.0"),
            "port": port,
            "cors": {
                "allow_origins": cors.get("allow_origins", ["http://localhost:3000"]),
                "allow_methods": cors.get("allow_methods", ["GET", "POST", "OPTIONS"]),
                "allow_headers": cors.get(
                    "allow_headers", ["Content-Type", "Authorization"]
                ),
            },
        }

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging", {})
