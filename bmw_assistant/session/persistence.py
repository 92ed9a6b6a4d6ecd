"""
Durable save/restore of the message log across reloads.

Version: 2.0.0
"""
import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from ..models import (
    Message,
    MessageLog,
    UserMessage,
    greeting_message,
)
from .storage_backend import StorageBackend

logger = logging.getLogger(__name__)


class PersistenceStore:
    """
    Serializes the message log under one namespaced key.

    The store never owns messages: it only reads or writes them during an
    explicit save/load. Storage failures are logged and swallowed so the
    in-memory session keeps working.
    """

    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str,
        greeting: str
    ):
        """
        Initialize persistence store.

        Args:
            backend: Durable key/value backend
            storage_key: Key holding the serialized log
            greeting: Content of the default greeting message
        """
        self.backend = backend
        self.storage_key = storage_key
        self.greeting = greeting

    def default_log(self) -> List[Message]:
        return [greeting_message(self.greeting)]

    @staticmethod
    def _strip_previews(messages: Sequence[Message]) -> List[Message]:
        """Copies of messages without preview references (invalid after reload)."""
        stripped: List[Message] = []
        for message in messages:
            if isinstance(message, UserMessage) and message.attachments:
                message = message.model_copy(update={
                    "attachments": [a.without_preview() for a in message.attachments]
                })
            stripped.append(message)
        return stripped

    def serialize(self, messages: Sequence[Message]) -> str:
        payload = MessageLog.dump_json(
            self._strip_previews(messages),
            by_alias=True,
            exclude_none=True
        )
        return payload.decode("utf-8")

    async def save(self, messages: Sequence[Message]) -> bool:
        """
        Write the log.

        Args:
            messages: Current message log

        Returns:
            True if written, False if the write failed (already logged)
        """
        try:
            data = self.serialize(messages)
            await self.backend.set(self.storage_key, data)
            logger.debug(f"Saved {len(messages)} messages under {self.storage_key}")
            return True
        except Exception as e:
            logger.warning(f"Failed to persist chat history: {e}")
            return False

    async def load(self) -> List[Message]:
        """
        Read the log.

        Returns:
            Saved log, or the default greeting log if nothing usable is stored
        """
        try:
            raw: Optional[str] = await self.backend.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to read chat history: {e}")
            return self.default_log()

        if not raw:
            return self.default_log()

        try:
            messages = MessageLog.validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed chat history: {e}")
            return self.default_log()

        if not messages:
            return self.default_log()

        logger.debug(f"Loaded {len(messages)} messages from {self.storage_key}")
        return messages

    async def clear(self) -> bool:
        """Remove the stored log."""
        try:
            await self.backend.delete(self.storage_key)
            return True
        except Exception as e:
            logger.warning(f"Failed to clear chat history: {e}")
            return False

    async def close(self) -> None:
        """Release the storage backend."""
        try:
            await self.backend.close()
        except Exception as e:
            logger.warning(f"Failed to close chat history storage: {e}")


__all__ = ['PersistenceStore']
