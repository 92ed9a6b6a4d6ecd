"""
Logging configuration for applications embedding the assistant.
"""
import logging
from typing import Optional

from ..config import ChatSettings, settings as default_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(
    chat_settings: Optional[ChatSettings] = None,
    handler: Optional[logging.Handler] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Debug mode forces DEBUG level; otherwise the configured log_level is used.

    Args:
        chat_settings: Settings to read levels from (global settings if None)
        handler: Handler to attach (stream handler if None)

    Returns:
        The configured package logger
    """
    chat_settings = chat_settings or default_settings
    level = logging.DEBUG if chat_settings.debug else getattr(logging, chat_settings.log_level)

    package_logger = logging.getLogger("bmw_assistant")
    package_logger.setLevel(level)

    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Replace handlers from earlier calls
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)

    return package_logger


__all__ = ['configure_logging', 'LOG_FORMAT']
