"""
In-memory storage backend.
Suitable for tests and embedding contexts without durable storage.

Version: 2.0.0
"""
import asyncio
import logging
from typing import Dict, Optional

from .storage_backend import StorageBackend, StorageError

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageBackend):
    """
    In-memory implementation of StorageBackend.

    Features:
    - Async-safe operations using an asyncio lock
    - Optional byte quota to mimic browser storage limits

    Limitations:
    - Values lost on restart
    - Not shared across processes
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        """
        Initialize in-memory storage.

        Args:
            quota_bytes: Maximum total size of stored values (None = unlimited)
        """
        self.values: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.lock = asyncio.Lock()

        logger.info(f"InMemoryStorage initialized (quota_bytes={quota_bytes})")

    async def get(self, key: str) -> Optional[str]:
        async with self.lock:
            return self.values.get(key)

    async def set(self, key: str, value: str) -> bool:
        """Store value, enforcing the quota across all keys."""
        async with self.lock:
            if self.quota_bytes is not None:
                others = sum(
                    len(v.encode("utf-8")) for k, v in self.values.items() if k != key
                )
                if others + len(value.encode("utf-8")) > self.quota_bytes:
                    raise StorageError(
                        f"Quota exceeded writing {key} ({self.quota_bytes} bytes)"
                    )

            self.values[key] = value
            logger.debug(f"Stored {key} ({len(value)} chars)")
            return True

    async def delete(self, key: str) -> bool:
        async with self.lock:
            if key in self.values:
                del self.values[key]
                logger.debug(f"Deleted {key}")
                return True
            return False


__all__ = ['InMemoryStorage']
