"""
Agents module for the Building Material Warehouse assistant
"""

from .chat_session import ChatSessionManager, ChatViewState

__all__ = [
    "ChatSessionManager",
    "ChatViewState",
]
