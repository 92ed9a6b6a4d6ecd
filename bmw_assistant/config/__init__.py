"""
Configuration package.
Exposes the chat settings model, the cached settings instance and
backend URL resolution.
"""
from .chat_settings import (
    ChatSettings,
    Environment,
    StorageBackendType,
    PROD_API_FALLBACK,
    DEV_API_FALLBACK,
    DEFAULT_ALLOWED_MIME_TYPES,
    resolve_api_base_url,
    get_settings,
    settings,
)

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
