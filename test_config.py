#!/usr/bin/env python3
"""Tests for Configuration loading and validation."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import yaml

from chat_relay.config import Configuration

BASE_CONFIG = {
    "llm": {
        "active": "openai",
        "providers": {
            "openai": {
                "base_url": "https://api.openai.com/v1",
                "model": "gpt-4o-mini",
                "temperature": 0.5,
            }
        },
    },
    "relay": {"mode": "plain"},
}


def make_config(data) -> Configuration:
    with patch.object(Configuration, "_load_yaml_config", return_value=data):
        with patch.object(Configuration, "load_env"):
            return Configuration()


class TestConfiguration:
    """Test Configuration accessors."""

    def test_packaged_config_loads(self):
        """Test the packaged config.yaml loads and validates."""
        config = Configuration()
        assert config.get_llm_config()["model"]
        assert config.get_relay_config()["mode"] in ("plain", "structured")
        assert config.get_server_config()["port"] > 0

    def test_explicit_path(self, tmp_path):
        """Test loading from an explicit config path."""
        path = tmp_path / "relay.yaml"
        path.write_text(yaml.safe_dump(BASE_CONFIG))
        config = Configuration(str(path))
        assert config.get_llm_config()["temperature"] == 0.5

    def test_path_from_environment(self, tmp_path, monkeypatch):
        """Test the config path is read from CHAT_RELAY_CONFIG."""
        path = tmp_path / "env.yaml"
        path.write_text(yaml.safe_dump({**BASE_CONFIG, "relay": {"mode": "structured"}}))
        monkeypatch.setenv("CHAT_RELAY_CONFIG", str(path))
        assert Configuration().get_relay_config()["mode"] == "structured"

    def test_non_dict_yaml_rejected(self, tmp_path):
        """Test a YAML file that is not a mapping is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="YAML dict"):
            Configuration(str(path))

    def test_api_key_present(self, monkeypatch):
        """Test the API key is read from the provider's variable."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-abc")
        assert make_config(BASE_CONFIG).llm_api_key == "sk-abc"

    def test_api_key_missing_is_none(self, monkeypatch):
        """Test a missing API key is None instead of an error."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert make_config(BASE_CONFIG).llm_api_key is None

    def test_unknown_provider_key_mapping(self):
        """Test an unknown provider has no API key mapping."""
        data = {**BASE_CONFIG, "llm": {**BASE_CONFIG["llm"], "active": "nowhere"}}
        with pytest.raises(ValueError, match="no API key mapping"):
            _ = make_config(data).llm_api_key

    def test_active_provider_must_exist(self):
        """Test the active provider must be configured."""
        data = {**BASE_CONFIG, "llm": {"active": "groq", "providers": {}}}
        with pytest.raises(ValueError, match="not found in providers"):
            make_config(data).get_llm_config()

    def test_http_client_defaults(self):
        """Test HTTP client defaults, including no read timeout."""
        http = make_config(BASE_CONFIG).get_http_client_config()
        assert http["read_timeout"] is None
        assert http["max_connections"] == 100

    def test_http_client_validation(self):
        """Test keepalive cannot exceed max connections."""
        data = yaml.safe_load(yaml.safe_dump(BASE_CONFIG))
        data["llm"]["providers"]["openai"]["http_client"] = {
            "max_connections": 5,
            "max_keepalive": 10,
        }
        with pytest.raises(ValueError, match="max_keepalive"):
            make_config(data).get_http_client_config()

    def test_relay_defaults(self):
        """Test default flush policies and prompts."""
        relay = make_config(BASE_CONFIG).get_relay_config()
        assert relay["flush"]["plain"] == {
            "sentence_end": True,
            "paragraph_break": True,
            "max_buffer_chars": 100,
        }
        assert relay["flush"]["structured"]["max_buffer_chars"] == 8000
        assert relay["flush"]["structured"]["sentence_end"] is False
        assert relay["prompts"] == {"plain": None, "structured": None}

    def test_invalid_mode(self):
        """Test an unknown relay mode is rejected."""
        with pytest.raises(ValueError, match="relay.mode"):
            make_config({**BASE_CONFIG, "relay": {"mode": "xml"}}).get_relay_config()

    def test_invalid_threshold(self):
        """Test a non-positive flush threshold is rejected."""
        data = {**BASE_CONFIG, "relay": {"flush": {"plain": {"max_buffer_chars": 0}}}}
        with pytest.raises(ValueError, match="max_buffer_chars"):
            make_config(data).get_relay_config()

    def test_server_defaults_and_port_env(self, monkeypatch):
        """Test server defaults and the PORT override."""
        monkeypatch.delenv("PORT", raising=False)
        server = make_config(BASE_CONFIG).get_server_config()
        assert server["port"] == 4000
        assert server["cors"]["allow_origins"] == ["http://localhost:3000"]

        monkeypatch.setenv("PORT", "8080")
        assert make_config(BASE_CONFIG).get_server_config()["port"] == 8080

    def test_config_not_mutated(self):
        """Test accessors do not mutate the loaded config."""
        config = make_config(BASE_CONFIG)
        config.get_http_client_config()
        config.get_llm_config()
        assert "http_client" not in BASE_CONFIG["llm"]["providers"]["openai"]
