"""
Building Material Warehouse AI assistant chat client
"""

__version__ = "2.0.0"
__author__ = "Building Material Warehouse Team"

# Application metadata
APP_NAME = "BMW Assistant"
APP_DESCRIPTION = "Chat session manager with attachments, manual retry and voice I/O"

# Import key components for easier access
from .config import settings, get_settings
from .agents import ChatSessionManager, ChatViewState
from .utils import configure_logging

__all__ = [
    "ChatSessionManager",
    "ChatViewState",
    "settings",
    "get_settings",
    "configure_logging",
    "APP_NAME",
    "APP_DESCRIPTION",
    "__version__",
]
