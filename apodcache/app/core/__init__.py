"""Core utilities for the APOD cache."""

from apodcache.app.core.config import settings
from apodcache.app.core.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
]
