"""
File ingestion client.
Uploads attachments one at a time and resolves them into server references,
degrading to a failure note when an upload does not succeed.

Version: 2.0.0
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from ..config import ChatSettings
from ..models import Attachment
from .attachment_encoder import PendingAttachment

logger = logging.getLogger(__name__)


# ===========================
# Custom Exceptions
# ===========================

class UploadError(Exception):
    """Base exception for ingestion failures."""
    pass


class UploadHTTPError(UploadError):
    """Ingestion endpoint answered with a non-2xx status."""

    def __init__(self, status: int):
        super().__init__(f"ingestion service returned HTTP {status}")
        self.status = status


class UploadPayloadError(UploadError):
    """Ingestion endpoint answered 2xx without a usable body."""
    pass


def failure_note(pending: PendingAttachment, reason: str) -> str:
    """Context text telling the assistant a file was attached but unreadable."""
    file = pending.file
    return (
        f"[Attachment '{file.name}' ({file.mime_type}, {file.size} bytes) "
        f"could not be uploaded or read: {reason}]"
    )


# ===========================
# Upload Pipeline
# ===========================

class UploadPipeline:
    """
    Resolves local files into Attachments through the ingestion endpoint.

    Features:
    - One multipart request per file
    - Sequential batches (bounded memory for large files)
    - Per-file failure isolation: output length always equals input length
    """

    def __init__(
        self,
        upload_url: str,
        timeout: Optional[float] = None,
        user_agent: str = "BMWAssistant/2.0",
        session: Optional[ClientSession] = None
    ):
        """
        Initialize upload pipeline.

        Args:
            upload_url: Full URL of the ingestion endpoint
            timeout: Total request timeout in seconds (None = transport default)
            user_agent: User-Agent header value
            session: Shared HTTP session (created in initialize() if None)
        """
        self.upload_url = upload_url
        self.timeout = timeout
        self.user_agent = user_agent
        self.session: Optional[ClientSession] = session
        self._owns_session = session is None

    @classmethod
    def from_settings(
        cls,
        chat_settings: ChatSettings,
        session: Optional[ClientSession] = None
    ) -> "UploadPipeline":
        return cls(
            upload_url=chat_settings.upload_url(),
            timeout=chat_settings.http_timeout_seconds,
            user_agent=chat_settings.user_agent,
            session=session,
        )

    async def initialize(self) -> None:
        """Create the HTTP session if none was provided."""
        if self.session is not None:
            return

        timeout = ClientTimeout(total=self.timeout) if self.timeout else None
        kwargs: Dict[str, Any] = {
            "headers": {
                "User-Agent": self.user_agent,
                "Accept": "application/json"
            }
        }
        if timeout is not None:
            kwargs["timeout"] = timeout

        self.session = ClientSession(**kwargs)
        self._owns_session = True
        logger.info(f"✓ Upload pipeline initialized (endpoint: {self.upload_url})")

    async def cleanup(self) -> None:
        """Close the HTTP session if this pipeline created it."""
        if self.session and self._owns_session:
            await self.session.close()
            logger.info("✓ Upload pipeline session closed")
        self.session = None

    async def upload(self, pending: PendingAttachment) -> Attachment:
        """
        Upload one file.

        Never raises for transport or service failures: those produce a
        degraded Attachment with no remote_url and a failure note.

        Args:
            pending: Accepted file with its local preview

        Returns:
            Resolved or degraded Attachment
        """
        try:
            payload = await self._post_file(pending)
            attachment = pending.to_attachment(
                remote_url=payload["url"],
                preview_url=payload.get("previewDataUrl") or pending.preview_url,
                extracted_content=payload.get("content") or ""
            )
        except (UploadError, ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Upload failed for {pending.name}: {e}")
            return pending.to_attachment(
                remote_url=None,
                extracted_content=failure_note(pending, str(e) or type(e).__name__)
            )
        except Exception as e:
            logger.error(f"Unexpected error uploading {pending.name}: {e}", exc_info=True)
            return pending.to_attachment(
                remote_url=None,
                extracted_content=failure_note(pending, "unexpected upload error")
            )

        logger.info(f"Uploaded {pending.name} -> {attachment.remote_url}")
        return attachment

    async def upload_batch(self, batch: Sequence[PendingAttachment]) -> List[Attachment]:
        """
        Upload files sequentially.

        Args:
            batch: Accepted files in attachment order

        Returns:
            One Attachment per input, in the same order
        """
        results: List[Attachment] = []
        for pending in batch:
            results.append(await self.upload(pending))

        failed = sum(1 for a in results if not a.uploaded)
        if failed:
            logger.warning(f"{failed} of {len(results)} attachments failed to upload")
        return results

    # ===========================
    # Private Helper Methods
    # ===========================

    async def _post_file(self, pending: PendingAttachment) -> Dict[str, Any]:
        """POST one file as multipart form data and validate the response body."""
        if self.session is None:
            await self.initialize()

        form = aiohttp.FormData()
        form.add_field(
            "file",
            pending.file.data,
            filename=pending.file.name,
            content_type=pending.file.mime_type
        )

        async with self.session.post(self.upload_url, data=form) as response:
            if response.status < 200 or response.status >= 300:
                raise UploadHTTPError(response.status)

            try:
                payload = await response.json(content_type=None)
            except (ValueError, ClientError) as e:
                raise UploadPayloadError(f"unreadable ingestion response: {e}")

        if not isinstance(payload, dict) or not payload.get("url"):
            raise UploadPayloadError("ingestion response did not include a file URL")

        if not isinstance(payload["url"], str):
            raise UploadPayloadError("ingestion response file URL is not a string")

        for field in ("content", "previewDataUrl"):
            if payload.get(field) is not None and not isinstance(payload[field], str):
                raise UploadPayloadError(f"ingestion response field '{field}' is not a string")

        return payload


__all__ = [
    'UploadPipeline',
    'UploadError',
    'UploadHTTPError',
    'UploadPayloadError',
    'failure_note',
]
