"""
Conversation message models.
Messages are tagged by role; only user messages carry a delivery status.

Version: 2.0.0
"""
import secrets
import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class DeliveryStatus(str, Enum):
    """Round-trip outcome of a user message."""
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def generate_message_id() -> str:
    """Time-based id with a random suffix, unique without coordination."""
    return f"{now_ms()}-{secrets.token_hex(4)}"


class Attachment(BaseModel):
    """
    A file offered as context for a user message.

    remote_url is None when the upload failed; extracted_content then holds
    a note describing the failure.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: str = Field(..., min_length=1, max_length=512)
    mime_type: str = Field(default="application/octet-stream")
    byte_size: int = Field(default=0, ge=0)
    remote_url: Optional[str] = None
    preview_url: Optional[str] = None
    extracted_content: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return self.remote_url is not None

    def to_wire(self) -> Dict[str, Any]:
        """Reduced form sent to the completion endpoint (no binary or preview data)."""
        return {
            "name": self.name,
            "type": self.mime_type,
            "content": self.extracted_content or "",
        }

    def without_preview(self) -> "Attachment":
        return self.model_copy(update={"preview_url": None})


class _MessageBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    id: str = Field(default_factory=generate_message_id, min_length=1)
    content: str = Field(..., min_length=1)
    timestamp: int = Field(default_factory=now_ms, ge=0)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be blank")
        return v

    def to_wire(self) -> Dict[str, Any]:
        """Form sent to the completion endpoint."""
        return {"role": self.role, "content": self.content}


class UserMessage(_MessageBase):
    """Message typed (or dictated) by the user."""

    role: Literal["user"] = "user"
    attachments: List[Attachment] = Field(default_factory=list)
    status: DeliveryStatus = DeliveryStatus.SENDING

    def with_status(self, status: DeliveryStatus) -> "UserMessage":
        """Copy of this message differing only in status."""
        return self.model_copy(update={"status": status})

    def to_wire(self) -> Dict[str, Any]:
        data = super().to_wire()
        if self.attachments:
            data["attachments"] = [a.to_wire() for a in self.attachments]
        return data


class AssistantMessage(_MessageBase):
    """Reply from the assistant; delivered by construction."""

    role: Literal["assistant"] = "assistant"
    products: List[Dict[str, Any]] = Field(default_factory=list)


Message = Annotated[Union[UserMessage, AssistantMessage], Field(discriminator="role")]

# Validates and dumps whole message logs
MessageLog = TypeAdapter(List[Message])


def placeholder_content(attachments: List[Attachment]) -> str:
    """Display text for a user message that only carries attachments."""
    names = ", ".join(a.name for a in attachments)
    return f"Attached: {names}" if names else "Attached files"


def greeting_message(content: str) -> AssistantMessage:
    """Fresh assistant greeting."""
    return AssistantMessage(content=content)


__all__ = [
    'DeliveryStatus',
    'Attachment',
    'UserMessage',
    'AssistantMessage',
    'Message',
    'MessageLog',
    'generate_message_id',
    'now_ms',
    'placeholder_content',
    'greeting_message',
]
