"""
Abstract storage backend interface.
Defines the contract for durable key/value persistence of serialized
conversation state.

Version: 2.0.0
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StorageError(Exception):
    """Raised when a backend cannot read or write a key."""
    pass


class StorageBackend(ABC):
    """
    Abstract base class for durable string storage.

    Implementations must provide async-safe operations for:
    - Getting a stored value
    - Setting a value (may fail, e.g. quota exceeded)
    - Deleting a value
    - Checking existence
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get the value stored under key.

        Args:
            key: Storage key

        Returns:
            Stored string or None if absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """
        Store value under key, replacing any previous value.

        Args:
            key: Storage key
            value: Serialized value

        Returns:
            True if successful

        Raises:
            StorageError: If the value cannot be written
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete the value stored under key.

        Args:
            key: Storage key

        Returns:
            True if deleted, False if not found
        """
        pass

    async def exists(self, key: str) -> bool:
        """Check if a value is stored under key."""
        return (await self.get(key)) is not None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on the backend.

        Returns:
            Dictionary with health status
        """
        try:
            test_key = f"health_check_{datetime.now(timezone.utc).timestamp()}"

            set_success = await self.set(test_key, "ok")
            get_success = (await self.get(test_key)) == "ok"
            delete_success = await self.delete(test_key)

            return {
                "healthy": set_success and get_success and delete_success,
                "backend": type(self).__name__,
                "operations": {
                    "set": set_success,
                    "get": get_success,
                    "delete": delete_success
                }
            }

        except Exception as e:
            return {
                "healthy": False,
                "backend": type(self).__name__,
                "error": str(e)
            }


__all__ = ['StorageBackend', 'StorageError']
