"""
File-backed storage backend.
One file per key under a storage directory; the local analogue of
browser localStorage.

Version: 2.0.0
"""
import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

from .storage_backend import StorageBackend, StorageError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage(StorageBackend):
    """
    Stores each key as a UTF-8 file in a directory.

    Writes go to a temporary file first and are then moved into place, so a
    crash mid-write never leaves a truncated value behind.
    """

    def __init__(self, storage_dir: Union[str, Path]):
        """
        Initialize file storage.

        Args:
            storage_dir: Directory holding the stored values (created on first write)
        """
        self.storage_dir = Path(storage_dir)
        self.lock = asyncio.Lock()

        logger.info(f"FileStorage initialized (dir={self.storage_dir})")

    def path_for(self, key: str) -> Path:
        """File path for a key; unsafe characters are replaced."""
        return self.storage_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    async def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        async with self.lock:
            if not await aiofiles.os.path.exists(path):
                return None
            try:
                async with aiofiles.open(path, "r", encoding="utf-8") as f:
                    return await f.read()
            except (OSError, UnicodeDecodeError) as e:
                raise StorageError(f"Failed to read {path}: {e}") from e

    async def set(self, key: str, value: str) -> bool:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        async with self.lock:
            try:
                await aiofiles.os.makedirs(self.storage_dir, exist_ok=True)
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(value)
                await aiofiles.os.replace(tmp_path, path)
            except OSError as e:
                raise StorageError(f"Failed to write {path}: {e}") from e

            logger.debug(f"Stored {key} at {path}")
            return True

    async def delete(self, key: str) -> bool:
        path = self.path_for(key)
        async with self.lock:
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                return False
            except OSError as e:
                raise StorageError(f"Failed to delete {path}: {e}") from e

            logger.debug(f"Deleted {key}")
            return True


__all__ = ['FileStorage']
