"""
Attachment acceptance and local preview handling.
Decides which user-selected files may be sent and creates transient
previews for images before they are uploaded.

Version: 2.0.0

Changes:
- MIME based acceptance instead of extension lists
- Preview references tracked in a release list and revoked explicitly
"""
import logging
import mimetypes
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import aiofiles
import aiofiles.os

from ..config import ChatSettings
from ..models import Attachment

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


# ===========================
# File Handles
# ===========================

@dataclass(frozen=True)
class LocalFile:
    """A user-selected file: client-observed metadata plus its bytes."""
    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        mime_type: Optional[str] = None
    ) -> "LocalFile":
        """Build a file handle, guessing the MIME type from the name if needed."""
        if not mime_type:
            mime_type = mimetypes.guess_type(name)[0] or DEFAULT_MIME_TYPE
        return cls(name=name, mime_type=mime_type.lower(), data=data)

    @classmethod
    async def from_path(
        cls,
        path: Union[str, Path],
        mime_type: Optional[str] = None
    ) -> "LocalFile":
        """Read a file from disk into a handle."""
        path = Path(path)
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
        return cls.from_bytes(path.name, data, mime_type)


@dataclass
class PendingAttachment:
    """An accepted file waiting to be sent, with its local preview (images only)."""
    file: LocalFile
    preview_url: Optional[str] = None

    @property
    def name(self) -> str:
        return self.file.name

    def to_attachment(self, **updates) -> Attachment:
        """Attachment carrying the client-observed metadata."""
        values = {
            "name": self.file.name,
            "mime_type": self.file.mime_type,
            "byte_size": self.file.size,
            "preview_url": self.preview_url,
        }
        values.update(updates)
        return Attachment(**values)


# ===========================
# Preview Release List
# ===========================

class PreviewRegistry:
    """
    Release list of local preview references.

    Each reference is a file:// URI backed by a temporary file; revoking it
    deletes the file.
    """

    def __init__(self, preview_dir: Optional[Union[str, Path]] = None):
        if preview_dir is None:
            preview_dir = Path(tempfile.gettempdir()) / "bmw_assistant_previews"
        self.preview_dir = Path(preview_dir)
        self.references: Dict[str, Path] = {}

    def __len__(self) -> int:
        return len(self.references)

    def __contains__(self, uri: object) -> bool:
        return uri in self.references

    async def create(self, file: LocalFile) -> str:
        """Write the file's bytes to a preview file and register its URI."""
        await aiofiles.os.makedirs(self.preview_dir, exist_ok=True)
        safe_name = Path(file.name).name or "preview"
        path = self.preview_dir / f"{uuid.uuid4().hex[:12]}_{safe_name}"

        async with aiofiles.open(path, "wb") as f:
            await f.write(file.data)

        uri = path.resolve().as_uri()
        self.references[uri] = path
        logger.debug(f"Created preview {uri}")
        return uri

    async def revoke(self, uri: Optional[str]) -> bool:
        """Revoke one reference. Unknown URIs (e.g. server previews) are ignored."""
        if not uri or uri not in self.references:
            return False

        path = self.references.pop(uri)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove preview file {path}: {e}")

        logger.debug(f"Revoked preview {uri}")
        return True

    async def revoke_all(self) -> int:
        """Revoke every registered reference."""
        uris = list(self.references)
        for uri in uris:
            await self.revoke(uri)

        if uris:
            logger.info(f"Released {len(uris)} preview references")
        return len(uris)


# ===========================
# Encoder
# ===========================

class AttachmentEncoder:
    """
    Filters user-selected files and prepares them for upload.

    Oversized or unsupported files are dropped from a batch without error;
    the rest of the batch proceeds.
    """

    def __init__(
        self,
        max_file_size: int,
        allowed_mime_types: Iterable[str],
        registry: Optional[PreviewRegistry] = None
    ):
        """
        Initialize attachment encoder.

        Args:
            max_file_size: Maximum accepted size in bytes
            allowed_mime_types: Accepted types; "family/*" accepts a whole family
            registry: Release list for previews (new temp-dir registry if None)
        """
        self.max_file_size = max_file_size
        self.allowed_mime_types = [t.lower() for t in allowed_mime_types]
        self.registry = registry or PreviewRegistry()

    @classmethod
    def from_settings(
        cls,
        chat_settings: ChatSettings,
        registry: Optional[PreviewRegistry] = None
    ) -> "AttachmentEncoder":
        return cls(
            max_file_size=chat_settings.attachment_max_file_size,
            allowed_mime_types=chat_settings.attachment_allowed_mime_types,
            registry=registry or PreviewRegistry(chat_settings.preview_dir),
        )

    def mime_type_allowed(self, mime_type: str) -> bool:
        mime_type = (mime_type or "").lower()
        for allowed in self.allowed_mime_types:
            if allowed.endswith("/*"):
                if mime_type.startswith(allowed[:-1]):
                    return True
            elif mime_type == allowed:
                return True
        return False

    def accepts(self, file: LocalFile) -> bool:
        """Whether a file may be attached."""
        if not self.mime_type_allowed(file.mime_type):
            logger.debug(f"Rejected {file.name}: unsupported type {file.mime_type}")
            return False

        if file.size > self.max_file_size:
            logger.debug(
                f"Rejected {file.name}: {file.size} bytes exceeds "
                f"{self.max_file_size} bytes"
            )
            return False

        return True

    def filter_batch(self, files: Iterable[LocalFile]) -> List[LocalFile]:
        """Accepted files of a batch, in their original order."""
        return [f for f in files if self.accepts(f)]

    async def encode(self, file: LocalFile) -> PendingAttachment:
        """
        Prepare an accepted file, creating a local preview for images.

        A preview that cannot be written is skipped; the file is still attached.
        """
        preview_url = None
        if file.is_image:
            try:
                preview_url = await self.registry.create(file)
            except OSError as e:
                logger.warning(f"Could not create preview for {file.name}: {e}")

        return PendingAttachment(file=file, preview_url=preview_url)

    async def encode_batch(self, files: Iterable[LocalFile]) -> List[PendingAttachment]:
        """Filter a batch and prepare the accepted files."""
        batch = list(files)
        accepted = self.filter_batch(batch)

        if len(accepted) < len(batch):
            logger.info(f"Filtered out {len(batch) - len(accepted)} of {len(batch)} files")

        return [await self.encode(f) for f in accepted]

    async def release(self, pending: PendingAttachment) -> None:
        """Release the local preview of a pending attachment."""
        await self.registry.revoke(pending.preview_url)

    async def release_all(self) -> int:
        """Release every preview this encoder created."""
        return await self.registry.revoke_all()


__all__ = [
    'LocalFile',
    'PendingAttachment',
    'PreviewRegistry',
    'AttachmentEncoder',
]
