"""
Tests for settings loading and backend URL resolution.
"""
import logging

import pytest
from pydantic import ValidationError

from bmw_assistant.config import (
    ChatSettings,
    DEV_API_FALLBACK,
    PROD_API_FALLBACK,
    StorageBackendType,
    resolve_api_base_url,
)
from bmw_assistant.utils import configure_logging


# ===========================
# URL Resolution Tests
# ===========================

@pytest.mark.unit
def test_development_defaults_to_localhost():
    """Test development without an explicit base talks to the local backend."""
    config = ChatSettings(environment="development", api_base_url=None)

    assert resolve_api_base_url(config) == DEV_API_FALLBACK
    assert config.chat_url() == f"{DEV_API_FALLBACK}/api/bmw/chat"


@pytest.mark.unit
def test_production_defaults_to_production_backend():
    """Test production without an explicit base talks to the production backend."""
    config = ChatSettings(environment="production", api_base_url=None)

    assert resolve_api_base_url(config) == PROD_API_FALLBACK


@pytest.mark.unit
@pytest.mark.parametrize("base", ["http://localhost:3001", "http://127.0.0.1:8080/api"])
def test_production_never_uses_localhost(base):
    """Test a localhost base is replaced outside development."""
    config = ChatSettings(environment="production", api_base_url=base)

    assert resolve_api_base_url(config) == PROD_API_FALLBACK


@pytest.mark.unit
def test_development_keeps_localhost():
    """Test development may point at any local port."""
    config = ChatSettings(environment="development", api_base_url="http://localhost:4000")

    assert resolve_api_base_url(config) == "http://localhost:4000"


@pytest.mark.unit
def test_only_origin_is_used():
    """Test paths and trailing slashes in the base URL are dropped."""
    config = ChatSettings(environment="production", api_base_url="https://api.example.com/v1/")

    assert resolve_api_base_url(config) == "https://api.example.com"
    assert config.upload_url() == "https://api.example.com/api/bmw/upload"


@pytest.mark.unit
def test_invalid_base_falls_back():
    """Test a relative or malformed base URL falls back to the default."""
    config = ChatSettings(environment="production", api_base_url="not a url")

    assert resolve_api_base_url(config) == PROD_API_FALLBACK


@pytest.mark.unit
def test_paths_normalized():
    """Test endpoint paths always start with one slash."""
    config = ChatSettings(chat_path="api/chat", upload_path="//api/upload")

    assert config.chat_path == "/api/chat"
    assert config.upload_path == "/api/upload"


# ===========================
# Environment Loading Tests
# ===========================

@pytest.mark.unit
def test_mime_types_from_comma_separated_env(monkeypatch):
    """Test allowed MIME types can be given as a comma-separated list."""
    monkeypatch.setenv("ATTACHMENT_ALLOWED_MIME_TYPES", "image/*, Application/PDF")

    config = ChatSettings()

    assert config.attachment_allowed_mime_types == ["image/*", "application/pdf"]


@pytest.mark.unit
def test_mime_types_from_json_env(monkeypatch):
    """Test allowed MIME types can be given as a JSON list."""
    monkeypatch.setenv("ATTACHMENT_ALLOWED_MIME_TYPES", '["text/plain"]')

    config = ChatSettings()

    assert config.attachment_allowed_mime_types == ["text/plain"]


@pytest.mark.unit
def test_storage_backend_from_env(monkeypatch):
    """Test storage backend selection from the environment."""
    monkeypatch.setenv("STORAGE_BACKEND", "redis")

    assert ChatSettings().storage_backend == StorageBackendType.REDIS


@pytest.mark.unit
def test_invalid_values_rejected():
    """Test invalid settings fail validation."""
    with pytest.raises(ValidationError):
        ChatSettings(log_level="LOUD")

    with pytest.raises(ValidationError):
        ChatSettings(http_timeout_seconds=0)


# ===========================
# Logging Tests
# ===========================

@pytest.mark.unit
def test_configure_logging_levels(test_settings):
    """Test debug forces DEBUG, otherwise log_level applies."""
    handler = logging.NullHandler()

    logger = configure_logging(test_settings, handler=handler)
    assert logger.level == logging.DEBUG
    assert logger.handlers == [handler]

    quiet = ChatSettings(debug=False, log_level="warning")
    logger = configure_logging(quiet, handler=handler)
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
