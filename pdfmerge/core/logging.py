import logging
from logging import Logger
from typing import Optional

from .config import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> Logger:
    """Return the shared service logger, attaching its handler on first use."""
    settings = settings or get_settings()

    logger = logging.getLogger(settings.app_name)
    # Re-applied on every call so an explicit Settings passed to create_app wins.
    logger.setLevel(settings.log_level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(levelname)s] %(asctime)s | %(name)s | %(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False

    return logger
