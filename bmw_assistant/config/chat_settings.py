"""
Chat assistant configuration settings.
Defines endpoints, storage, attachment limits and speech defaults.

Version: 2.0.0 (Endpoint resolution and storage backend selection)
"""
from enum import Enum
from functools import lru_cache
from typing import Annotated, List, Optional
from urllib.parse import urlsplit
import json
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Used when a production build would otherwise talk to localhost
PROD_API_FALLBACK = "https://bmw-backend-production.up.railway.app"
DEV_API_FALLBACK = "http://localhost:3001"

DEFAULT_ALLOWED_MIME_TYPES = [
    "image/*",
    "application/pdf",
    "text/*",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]

DEFAULT_GREETING = (
    "Hi! I'm the Building Material Warehouse assistant. Tell me your budget "
    "and the look you want, and I'll recommend materials from our Collections."
)

DEFAULT_APOLOGY = (
    "Sorry, I encountered an error. Please try again later or use the "
    "Contact Us button to reach our team."
)


class Environment(str, Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class StorageBackendType(str, Enum):
    """Durable storage backend for the message log."""
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class ChatSettings(BaseSettings):
    """
    Chat assistant configuration.
    Values are read from the environment (or a .env file) by field name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===========================
    # General
    # ===========================

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level used when debug is disabled"
    )

    # ===========================
    # Remote Endpoints
    # ===========================

    api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the assistant backend (origin only is used)"
    )

    chat_path: str = Field(
        default="/api/bmw/chat",
        description="Path of the conversational completion endpoint"
    )

    upload_path: str = Field(
        default="/api/bmw/upload",
        description="Path of the file ingestion endpoint"
    )

    http_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Total request timeout; None keeps the transport default"
    )

    user_agent: str = Field(
        default="BMWAssistant/2.0",
        description="User-Agent header sent to the backend"
    )

    # ===========================
    # Persistence
    # ===========================

    storage_backend: StorageBackendType = Field(
        default=StorageBackendType.FILE,
        description="Where the message log is persisted"
    )

    storage_key: str = Field(
        default="bmw-assistant:chat-messages",
        min_length=1,
        max_length=255,
        description="Namespaced key holding the serialized message log"
    )

    storage_dir: str = Field(
        default=".bmw_assistant",
        description="Directory used by the file storage backend"
    )

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the redis storage backend"
    )

    # ===========================
    # Attachments
    # ===========================

    attachment_max_file_size: int = Field(
        default=10 * 1024 * 1024,  # 10MiB
        ge=1024,
        description="Maximum attachment size in bytes"
    )

    attachment_allowed_mime_types: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES),
        description="Accepted MIME types; a trailing /* matches a whole family"
    )

    preview_dir: Optional[str] = Field(
        default=None,
        description="Directory for local image previews (temp dir if unset)"
    )

    # ===========================
    # Conversation
    # ===========================

    greeting_message: str = Field(
        default=DEFAULT_GREETING,
        min_length=1,
        description="Assistant greeting shown in a fresh conversation"
    )

    apology_message: str = Field(
        default=DEFAULT_APOLOGY,
        min_length=1,
        description="Assistant reply shown when delivery fails"
    )

    # ===========================
    # Speech
    # ===========================

    speech_locale: Optional[str] = Field(
        default=None,
        description="Locale for recognition and non-CJK playback (system locale if unset)"
    )

    # ===========================
    # Validators
    # ===========================

    @field_validator("attachment_allowed_mime_types", mode="before")
    @classmethod
    def parse_allowed_mime_types(cls, v):
        """Parse allowed MIME types from JSON or comma-separated strings."""
        if v is None:
            return list(DEFAULT_ALLOWED_MIME_TYPES)

        if isinstance(v, str):
            if v.strip().startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [t.strip().lower() for t in v.split(",") if t.strip()]

        return v

    @field_validator("chat_path", "upload_path")
    @classmethod
    def normalize_path(cls, v: str) -> str:
        """Endpoint paths always start with a single slash."""
        return "/" + v.strip().lstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    # ===========================
    # Helper Methods
    # ===========================

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def chat_url(self) -> str:
        """Full URL of the completion endpoint."""
        return f"{resolve_api_base_url(self)}{self.chat_path}"

    def upload_url(self) -> str:
        """Full URL of the ingestion endpoint."""
        return f"{resolve_api_base_url(self)}{self.upload_path}"


def resolve_api_base_url(chat_settings: ChatSettings) -> str:
    """
    Resolve the backend origin.

    An explicit api_base_url wins; otherwise development talks to the local
    backend and other environments to the production backend. Production
    never resolves to localhost, even when configured to.

    Args:
        chat_settings: Settings to resolve from

    Returns:
        Origin (scheme://host[:port]) without a trailing slash
    """
    is_dev = chat_settings.is_development
    fallback = DEV_API_FALLBACK if is_dev else PROD_API_FALLBACK
    candidate = (chat_settings.api_base_url or "").strip() or fallback

    try:
        parsed = urlsplit(candidate)
        host = (parsed.hostname or "").lower()
        if not parsed.scheme or not host:
            raise ValueError(f"Not an absolute URL: {candidate}")

        if not is_dev and host in ("localhost", "127.0.0.1"):
            logger.warning(
                f"Ignoring localhost API base in {chat_settings.environment.value}, "
                f"using {PROD_API_FALLBACK}"
            )
            return PROD_API_FALLBACK

        return f"{parsed.scheme}://{parsed.netloc}"

    except ValueError as e:
        logger.warning(f"Invalid API base URL {candidate!r}: {e}")
        return DEV_API_FALLBACK if is_dev else PROD_API_FALLBACK


@lru_cache()
def get_settings() -> ChatSettings:
    """Get cached settings instance."""
    return ChatSettings()


# Create global instance
settings = get_settings()

__all__ = [
    'ChatSettings',
    'Environment',
    'StorageBackendType',
    'PROD_API_FALLBACK',
    'DEV_API_FALLBACK',
    'DEFAULT_ALLOWED_MIME_TYPES',
    'resolve_api_base_url',
    'get_settings',
    'settings',
]
