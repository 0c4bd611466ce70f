import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from models_chat.config.settings import DEFAULT_INFERENCE_URL, load_settings
from models_chat.infrastructure.logging.logger import JsonFormatter
from models_chat.domain.exceptions import AuthError
from models_chat.providers import create_client
from models_chat.providers.auth import SettingsTokenProvider, StaticTokenProvider
from models_chat.providers.inference_client import InferenceClient


def test_overrides_take_precedence(monkeypatch):
    monkeypatch.setenv("HTTP_TIMEOUT", "12")
    cfg = load_settings(http_timeout=5.0)
    assert cfg.http_timeout == 5.0
    assert load_settings().http_timeout == 12.0


def test_token_aliases(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("MODELS_CHAT_TOKEN", "  tok-123  ")
    cfg = load_settings()
    assert cfg.github_token == "tok-123"
    assert SettingsTokenProvider(cfg).get_token() == "tok-123"


def test_blank_token_is_none():
    cfg = load_settings(github_token="   ")
    assert cfg.github_token is None
    assert SettingsTokenProvider(cfg).get_token() == ""


def test_yaml_config_file(monkeypatch, tmp_path):
    config = tmp_path / "models_chat.yaml"
    config.write_text("inference_url: https://yaml.example/chat\ntoken_delay_ms: 0\n", encoding="utf-8")
    monkeypatch.setenv("MODELS_CHAT_CONFIG_FILE", str(config))
    monkeypatch.delenv("INFERENCE_URL", raising=False)
    cfg = load_settings()
    assert cfg.inference_url == "https://yaml.example/chat"
    assert cfg.token_delay_ms == 0


def test_defaults_and_validation(monkeypatch):
    monkeypatch.delenv("INFERENCE_URL", raising=False)
    monkeypatch.setenv("MODELS_CHAT_CONFIG_FILE", "/nonexistent/models_chat.yaml")
    assert load_settings().inference_url == DEFAULT_INFERENCE_URL
    with pytest.raises(PydanticValidationError):
        load_settings(http_timeout=0.1)
    with pytest.raises(PydanticValidationError):
        load_settings(log_level="chatty")


def test_create_client_requires_token():
    cfg = load_settings(github_token="")
    with pytest.raises(AuthError):
        create_client(cfg)
    assert isinstance(create_client(cfg, StaticTokenProvider("tok")), InferenceClient)


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("models_chat", logging.INFO, __file__, 1, "Completed exchange", None, None)
    record.extra = {"chunks": 2, "model": "gpt-4o"}
    line = json.loads(JsonFormatter().format(record))
    assert line["msg"] == "Completed exchange"
    assert line["level"] == "INFO"
    assert line["chunks"] == 2
    assert line["ts"].endswith("Z")


def test_json_formatter_redacts_content():
    record = logging.LogRecord("models_chat", logging.INFO, __file__, 1, "x" * 100, None, None)
    line = json.loads(JsonFormatter(redact_content=True).format(record))
    assert len(line["msg"]) == 64
