"""
Utility modules for applications embedding the assistant.

Version: 2.0.0
"""

from .logging_setup import configure_logging, LOG_FORMAT

__all__ = [
    "configure_logging",
    "LOG_FORMAT",
]
