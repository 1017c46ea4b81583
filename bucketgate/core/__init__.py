"""Core utilities for bucketgate: settings and logging."""

from bucketgate.core.config import Settings, settings
from bucketgate.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
