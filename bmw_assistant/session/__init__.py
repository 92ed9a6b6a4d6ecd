"""
Session persistence package.
Provides storage backend abstractions and the message log persistence store.

Version: 2.0.0
"""
from typing import Optional

from ..config import ChatSettings, StorageBackendType
from .storage_backend import StorageBackend, StorageError
from .in_memory_storage import InMemoryStorage
from .file_storage import FileStorage
from .redis_storage import RedisStorage
from .persistence import PersistenceStore


def create_storage_backend(
    backend_type: str = "memory",
    **kwargs
) -> StorageBackend:
    """
    Factory function to create a storage backend.

    Args:
        backend_type: Type of backend ('memory', 'file' or 'redis')
        **kwargs: Backend-specific configuration

    Returns:
        StorageBackend instance

    Examples:
        # In-memory backend
        backend = create_storage_backend('memory', quota_bytes=5 * 1024 * 1024)

        # File backend
        backend = create_storage_backend('file', storage_dir='.bmw_assistant')

        # Redis backend
        backend = create_storage_backend(
            'redis',
            redis_url='redis://localhost:6379/0',
            key_prefix='bmw-assistant:'
        )
    """
    backend_type = StorageBackendType(backend_type)

    if backend_type == StorageBackendType.MEMORY:
        return InMemoryStorage(**kwargs)

    elif backend_type == StorageBackendType.FILE:
        return FileStorage(**kwargs)

    elif backend_type == StorageBackendType.REDIS:
        return RedisStorage(**kwargs)

    raise ValueError(f"Unknown storage backend: {backend_type}")


def create_persistence_store(
    chat_settings: ChatSettings,
    backend: Optional[StorageBackend] = None
) -> PersistenceStore:
    """
    Build the persistence store described by settings.

    Args:
        chat_settings: Settings naming the backend and storage key
        backend: Backend to use instead of the configured one

    Returns:
        PersistenceStore instance
    """
    if backend is None:
        backend_type = chat_settings.storage_backend
        if backend_type == StorageBackendType.FILE:
            backend = create_storage_backend('file', storage_dir=chat_settings.storage_dir)
        elif backend_type == StorageBackendType.REDIS:
            # storage_key already carries the namespace
            backend = create_storage_backend('redis', redis_url=chat_settings.redis_url, key_prefix="")
        else:
            backend = create_storage_backend('memory')

    return PersistenceStore(
        backend=backend,
        storage_key=chat_settings.storage_key,
        greeting=chat_settings.greeting_message
    )


__all__ = [
    # Core
    'StorageBackend',
    'StorageError',
    'PersistenceStore',

    # Implementations
    'InMemoryStorage',
    'FileStorage',
    'RedisStorage',

    # Factories
    'create_storage_backend',
    'create_persistence_store',
]
