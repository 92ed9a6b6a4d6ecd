"""
Chat session manager for the Building Material Warehouse assistant.
Owns the message log and orchestrates attachments, uploads, delivery,
manual retry, persistence and voice input/output.

Version: 2.0.0 (Per-message delivery state, manual retry, attachments)
"""
import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import ChatSettings, settings as default_settings
from ..models import (
    AssistantMessage,
    DeliveryStatus,
    Message,
    UserMessage,
    greeting_message,
    placeholder_content,
)
from ..session import PersistenceStore, create_persistence_store
from ..speech import SpeechBridge
from ..tools import (
    AttachmentEncoder,
    CompletionClient,
    CompletionError,
    LocalFile,
    PendingAttachment,
    UploadPipeline,
)

logger = logging.getLogger(__name__)


class ChatViewState(BaseModel):
    """Snapshot of everything the chat panel renders."""

    model_config = ConfigDict(frozen=True)

    is_open: bool
    messages: List[Message]
    is_loading: bool
    is_uploading: bool
    is_listening: bool
    speaking_id: Optional[str] = None
    draft: str = ""
    pending_attachments: List[str] = Field(default_factory=list)
    recognition_supported: bool = False
    synthesis_supported: bool = False


class ChatSessionManager:
    """
    Sole owner of one conversation's message log.

    Delivery state per request: idle -> sending -> delivered | failed.
    A failed message only goes back to sending through retry(); nothing is
    retried automatically. One request (send or retry) may be in flight at
    a time; further attempts while busy are rejected, not queued.

    No operation raises to the caller: failures become message state
    (failed status, failure notes on attachments) or a no-op.
    """

    def __init__(
        self,
        chat_settings: Optional[ChatSettings] = None,
        persistence: Optional[PersistenceStore] = None,
        encoder: Optional[AttachmentEncoder] = None,
        uploader: Optional[UploadPipeline] = None,
        completion: Optional[CompletionClient] = None,
        speech: Optional[SpeechBridge] = None
    ):
        """
        Initialize the session manager.

        Args:
            chat_settings: Settings instance (global settings if None)
            persistence: Message log store (built from settings if None)
            encoder: Attachment filter/preview encoder (built from settings if None)
            uploader: Ingestion client (built from settings if None)
            completion: Completion client (built from settings if None)
            speech: Speech bridge (voice disabled if None)
        """
        self.settings = chat_settings or default_settings
        self.persistence = persistence or create_persistence_store(self.settings)
        self.encoder = encoder or AttachmentEncoder.from_settings(self.settings)
        self.uploader = uploader or UploadPipeline.from_settings(self.settings)
        self.completion = completion or CompletionClient.from_settings(self.settings)
        self.speech = speech or SpeechBridge(locale_tag=self.settings.speech_locale)

        self.messages: List[Message] = [greeting_message(self.settings.greeting_message)]
        self.pending: List[PendingAttachment] = []
        self.draft = ""

        self.is_open = False
        self.is_loading = False
        self.is_uploading = False
        self.initialized = False

    # ===========================
    # Lifecycle
    # ===========================

    async def init(self) -> None:
        """
        Rehydrate the log and attach the transcript listener.

        Messages persisted while still sending are marked failed: the request
        that would have resolved them does not survive a restart.
        """
        messages = await self.persistence.load()

        interrupted = 0
        for index, message in enumerate(messages):
            if isinstance(message, UserMessage) and message.status == DeliveryStatus.SENDING:
                messages[index] = message.with_status(DeliveryStatus.FAILED)
                interrupted += 1

        self.messages = messages
        if interrupted:
            logger.info(f"Marked {interrupted} interrupted messages as failed")
            await self._persist()

        self.speech.on_transcript(self._append_transcript)
        self.initialized = True
        logger.info(f"✓ Chat session initialized with {len(self.messages)} messages")

    async def dispose(self) -> None:
        """Stop speech, release preview references, close HTTP sessions and storage."""
        try:
            self.speech.dispose()
            released = await self.encoder.release_all()
            self.pending = []

            await self.uploader.cleanup()
            await self.completion.cleanup()
            await self.persistence.close()

            self.initialized = False
            logger.info(f"✓ Chat session disposed ({released} previews released)")

        except Exception as e:
            logger.error(f"Error during chat session disposal: {e}", exc_info=True)

    async def __aenter__(self) -> "ChatSessionManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # ===========================
    # Read Access
    # ===========================

    @property
    def busy(self) -> bool:
        return self.is_loading or self.is_uploading

    def get_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def view_state(self) -> ChatViewState:
        return ChatViewState(
            is_open=self.is_open,
            messages=list(self.messages),
            is_loading=self.is_loading,
            is_uploading=self.is_uploading,
            is_listening=self.speech.is_listening,
            speaking_id=self.speech.speaking_key,
            draft=self.draft,
            pending_attachments=[p.name for p in self.pending],
            recognition_supported=self.speech.recognition_supported,
            synthesis_supported=self.speech.synthesis_supported,
        )

    # ===========================
    # Visibility & Compose Buffer
    # ===========================

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        """Hide the panel. Speech stops; an in-flight request still completes."""
        self.is_open = False
        self.speech.stop_listening()
        if self.speech.is_speaking:
            self.speech.stop_speaking()

    def set_draft(self, text: str) -> None:
        self.draft = text or ""

    def _append_transcript(self, transcript: str) -> None:
        current = self.draft.strip()
        self.draft = f"{current} {transcript}" if current else transcript

    # ===========================
    # Attachments
    # ===========================

    async def attach(self, files: Iterable[LocalFile]) -> int:
        """
        Add files to the pending attachments.

        Unsupported or oversized files are dropped silently.

        Returns:
            Number of files accepted
        """
        encoded = await self.encoder.encode_batch(files)
        self.pending.extend(encoded)
        return len(encoded)

    async def detach(self, index: int) -> bool:
        """Remove a pending attachment and release its preview."""
        if index < 0 or index >= len(self.pending):
            return False

        pending = self.pending.pop(index)
        await self.encoder.release(pending)
        return True

    # ===========================
    # Sending
    # ===========================

    async def send(
        self,
        text: Optional[str] = None,
        files: Optional[Iterable[LocalFile]] = None
    ) -> Optional[UserMessage]:
        """
        Send a user message.

        Args:
            text: Message text (the compose buffer if None)
            files: Files to attach (the pending attachments if None)

        Returns:
            The user message in its final state (delivered or failed), or
            None if nothing was sent
        """
        if self.busy:
            logger.debug("Send rejected: a request is already in flight")
            return None

        body = (self.draft if text is None else text or "").strip()

        if files is None:
            batch: List[PendingAttachment] = list(self.pending)
            accepted: List[LocalFile] = []
        else:
            batch = []
            accepted = self.encoder.filter_batch(files)

        if not body and not batch and not accepted:
            return None

        has_files = bool(batch or accepted)
        self.is_uploading = has_files
        self.is_loading = not has_files

        try:
            self.draft = ""
            if files is None:
                self.pending = []
            self.speech.stop_listening()

            attachments = []
            if has_files:
                for file in accepted:
                    batch.append(await self.encoder.encode(file))
                attachments = await self.uploader.upload_batch(batch)
                self.is_uploading = False
                self.is_loading = True

            message = UserMessage(
                content=body or placeholder_content(attachments),
                attachments=attachments,
                status=DeliveryStatus.SENDING,
            )
            self.messages.append(message)
            await self._persist()

            return await self._deliver(message)

        finally:
            self.is_uploading = False
            self.is_loading = False

    async def submit(self) -> Optional[UserMessage]:
        """Send the compose buffer with the pending attachments."""
        return await self.send()

    async def retry(self, message_id: str) -> Optional[UserMessage]:
        """
        Resend a failed user message.

        The log is truncated to end at the message, which goes back to
        sending with its original content and attachments.

        Returns:
            The message in its final state, or None if nothing was resent
        """
        if self.busy:
            logger.debug(f"Retry of {message_id} rejected: a request is already in flight")
            return None

        index = self._index_of(message_id)
        if index is None:
            return None

        message = self.messages[index]
        if not isinstance(message, UserMessage) or message.status != DeliveryStatus.FAILED:
            return None

        self.is_loading = True
        try:
            dropped = len(self.messages) - index - 1
            message = message.with_status(DeliveryStatus.SENDING)
            self.messages = self.messages[:index] + [message]
            await self._persist()

            logger.info(f"Retrying message {message_id} (dropped {dropped} trailing messages)")
            return await self._deliver(message)

        finally:
            self.is_loading = False

    async def clear(self) -> None:
        """Start over with a fresh greeting and erase the persisted log."""
        if self.speech.is_speaking:
            self.speech.stop_speaking()

        released = await self.encoder.release_all()
        self.pending = []
        self.messages = [greeting_message(self.settings.greeting_message)]
        await self.persistence.clear()

        logger.info(f"Chat history cleared ({released} previews released)")

    # ===========================
    # Voice
    # ===========================

    def toggle_listening(self) -> bool:
        """Start or stop dictation. Dictation cannot start while a request is in flight."""
        if not self.speech.is_listening and self.busy:
            return False
        return self.speech.toggle_listening()

    def toggle_speak(self, message_id: str) -> bool:
        """Play or stop an assistant message. Returns True if it is now playing."""
        message = self.get_message(message_id)
        if not isinstance(message, AssistantMessage):
            return False
        return self.speech.speak(message.content, message.id)

    # ===========================
    # Private Helper Methods
    # ===========================

    def _index_of(self, message_id: str) -> Optional[int]:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        return None

    def _replace_status(self, message_id: str, status: DeliveryStatus) -> Optional[UserMessage]:
        index = self._index_of(message_id)
        if index is None:
            return None

        updated = self.messages[index].with_status(status)
        self.messages[index] = updated
        return updated

    async def _deliver(self, message: UserMessage) -> Optional[UserMessage]:
        """Issue the completion request for the log ending with message and record the outcome."""
        reply = None
        try:
            reply = await self.completion.complete(list(self.messages))
        except CompletionError as e:
            logger.warning(f"Delivery of message {message.id} failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected error delivering message {message.id}: {e}", exc_info=True)

        status = DeliveryStatus.DELIVERED if reply is not None else DeliveryStatus.FAILED
        updated = self._replace_status(message.id, status)
        if updated is None:
            # The log was cleared while the request was pending
            logger.info(f"Discarding reply for message {message.id} no longer in the log")
            return None

        if reply is not None:
            response = AssistantMessage(content=reply.content, products=reply.products)
        else:
            response = AssistantMessage(content=self.settings.apology_message)

        self.messages.append(response)
        await self._persist()
        return updated

    async def _persist(self) -> None:
        await self.persistence.save(self.messages)


__all__ = ['ChatSessionManager', 'ChatViewState']
