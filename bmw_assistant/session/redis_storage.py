"""
Redis-backed storage backend.
Suitable when several processes embed the assistant for the same user.

Version: 2.0.0
"""
import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import (
    RedisError,
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError
)

from .storage_backend import StorageBackend, StorageError

logger = logging.getLogger(__name__)


class RedisStorage(StorageBackend):
    """
    Redis-backed implementation of StorageBackend.

    Features:
    - Connection pooling
    - Key prefixing to share a database with other applications
    - Optional TTL on stored values
    - Lazy connection with reconnect on unhealthy connections
    """

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "bmw-assistant:",
        ttl: Optional[int] = None,
        max_connections: int = 10,
        socket_timeout: int = 5,
        socket_connect_timeout: int = 5,
        client: Optional[Redis] = None
    ):
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL
            key_prefix: Prefix for stored keys
            ttl: Expiry for stored values in seconds (None = no expiry)
            max_connections: Maximum connection pool size
            socket_timeout: Socket timeout in seconds
            socket_connect_timeout: Connection timeout in seconds
            client: Pre-built client (used instead of redis_url when given)
        """
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.ttl = ttl
        self.pool = None

        if client is None:
            self.pool = redis.ConnectionPool.from_url(
                redis_url,
                max_connections=max_connections,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_connect_timeout,
                decode_responses=True
            )

        self.client: Optional[Redis] = client

        logger.info(
            f"RedisStorage initialized "
            f"(url={redis_url}, prefix={key_prefix}, ttl={ttl})"
        )

    async def _ensure_connection(self) -> Redis:
        """Create the client on first use and reconnect if the connection is unhealthy."""
        if self.client is None:
            self.client = Redis(connection_pool=self.pool)

        try:
            await self.client.ping()
        except (RedisConnectionError, RedisTimeoutError) as e:
            if self.pool is None:
                raise StorageError(f"Redis unavailable: {e}") from e

            logger.warning(f"Redis connection unhealthy, reconnecting: {e}")
            self.client = Redis(connection_pool=self.pool)
            try:
                await self.client.ping()
            except RedisError as e2:
                raise StorageError(f"Redis unavailable: {e2}") from e2

        return self.client

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        client = await self._ensure_connection()
        try:
            value = await client.get(self._make_key(key))
        except RedisError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> bool:
        client = await self._ensure_connection()
        try:
            result = await client.set(self._make_key(key), value, ex=self.ttl)
        except RedisError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        logger.debug(f"Stored {key} in Redis ({len(value)} chars)")
        return bool(result)

    async def delete(self, key: str) -> bool:
        client = await self._ensure_connection()
        try:
            deleted = await client.delete(self._make_key(key))
        except RedisError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

        return deleted > 0

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.client = None
        if self.pool:
            await self.pool.disconnect()
            logger.info("✓ Closed Redis connection")


__all__ = ['RedisStorage']
