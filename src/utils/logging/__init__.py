"""
Structured logging configuration for identity sync

Provides JSON-formatted logging with contextual information (table, column)
for the sync command and its CLI.

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/identity-sync/sync.log")

    # Get logger for your module
    logger = get_logger(__name__)

    # Log with context
    logger.info("Watermark repaired", extra={
        "table": "/data/events",
        "column": "id",
        "high_watermark": 41,
    })
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
