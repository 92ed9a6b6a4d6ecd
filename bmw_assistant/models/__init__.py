"""
Message models package.

Version: 2.0.0
"""

from .message import (
    DeliveryStatus,
    Attachment,
    UserMessage,
    AssistantMessage,
    Message,
    MessageLog,
    generate_message_id,
    now_ms,
    placeholder_content,
    greeting_message,
)

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
