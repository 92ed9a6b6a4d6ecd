"""
Conversational completion client.
Sends the serialized message log to the completion endpoint and parses the
assistant reply.

Version: 2.0.0
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from ..config import ChatSettings
from ..models import Message

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"


# ===========================
# Custom Exceptions
# ===========================

class CompletionError(Exception):
    """Base exception for completion failures."""
    pass


class CompletionHTTPError(CompletionError):
    """Completion endpoint answered with a non-2xx status."""

    def __init__(self, status: int, detail: Optional[str] = None):
        message = f"completion service returned HTTP {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.status = status


class CompletionPayloadError(CompletionError):
    """Completion endpoint answered without the success indicator or a reply."""
    pass


@dataclass
class CompletionReply:
    """Parsed assistant reply."""
    content: str
    products: List[Dict[str, Any]] = field(default_factory=list)


def build_payload(messages: Sequence[Message]) -> Dict[str, Any]:
    """Request body: every message reduced to role, content and attachment text."""
    return {"messages": [m.to_wire() for m in messages]}


def parse_reply(data: Any) -> CompletionReply:
    """
    Validate a completion response body.

    Raises:
        CompletionPayloadError: If the success indicator or reply text is missing
    """
    if not isinstance(data, dict):
        raise CompletionPayloadError("completion response is not a JSON object")

    if data.get("status") != SUCCESS_STATUS:
        raise CompletionPayloadError(
            f"completion response not successful: {data.get('message') or data.get('status')}"
        )

    content = data.get("message")
    if not isinstance(content, str) or not content.strip():
        raise CompletionPayloadError("completion response has no reply text")

    products = data.get("products") or []
    if not isinstance(products, list):
        logger.warning(f"Ignoring malformed products field: {type(products).__name__}")
        products = []

    return CompletionReply(
        content=content,
        products=[p for p in products if isinstance(p, dict)]
    )


class CompletionClient:
    """
    Client for the completion endpoint.

    Exactly one request per call: there is no retry here, retries are an
    explicit user action handled by the session manager.
    """

    def __init__(
        self,
        chat_url: str,
        timeout: Optional[float] = None,
        user_agent: str = "BMWAssistant/2.0",
        session: Optional[ClientSession] = None
    ):
        """
        Initialize completion client.

        Args:
            chat_url: Full URL of the completion endpoint
            timeout: Total request timeout in seconds (None = transport default)
            user_agent: User-Agent header value
            session: Shared HTTP session (created in initialize() if None)
        """
        self.chat_url = chat_url
        self.timeout = timeout
        self.user_agent = user_agent
        self.session: Optional[ClientSession] = session
        self._owns_session = session is None

    @classmethod
    def from_settings(
        cls,
        chat_settings: ChatSettings,
        session: Optional[ClientSession] = None
    ) -> "CompletionClient":
        return cls(
            chat_url=chat_settings.chat_url(),
            timeout=chat_settings.http_timeout_seconds,
            user_agent=chat_settings.user_agent,
            session=session,
        )

    async def initialize(self) -> None:
        """Create the HTTP session if none was provided."""
        if self.session is not None:
            return

        kwargs: Dict[str, Any] = {
            "headers": {
                "User-Agent": self.user_agent,
                "Accept": "application/json"
            }
        }
        if self.timeout:
            kwargs["timeout"] = ClientTimeout(total=self.timeout)

        self.session = ClientSession(**kwargs)
        self._owns_session = True
        logger.info(f"✓ Completion client initialized (endpoint: {self.chat_url})")

    async def cleanup(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session and self._owns_session:
            await self.session.close()
            logger.info("✓ Completion client session closed")
        self.session = None

    async def complete(self, messages: Sequence[Message]) -> CompletionReply:
        """
        Request the assistant reply for a conversation.

        Args:
            messages: Full message log, ending with the message being sent

        Returns:
            Parsed reply

        Raises:
            CompletionError: On network errors, non-2xx statuses or malformed bodies
        """
        if self.session is None:
            await self.initialize()

        payload = build_payload(messages)

        try:
            async with self.session.post(self.chat_url, json=payload) as response:
                try:
                    data = await response.json(content_type=None)
                except (ValueError, ClientError) as e:
                    if 200 <= response.status < 300:
                        raise CompletionPayloadError(f"unreadable completion response: {e}")
                    data = None

                if response.status < 200 or response.status >= 300:
                    detail = data.get("message") if isinstance(data, dict) else None
                    raise CompletionHTTPError(response.status, detail)

        except (ClientError, asyncio.TimeoutError) as e:
            raise CompletionError(f"completion request failed: {str(e) or type(e).__name__}") from e

        reply = parse_reply(data)
        logger.debug(
            f"Completion reply received ({len(reply.content)} chars, "
            f"{len(reply.products)} products)"
        )
        return reply


__all__ = [
    'CompletionClient',
    'CompletionReply',
    'CompletionError',
    'CompletionHTTPError',
    'CompletionPayloadError',
    'build_payload',
    'parse_reply',
]
