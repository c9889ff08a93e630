"""
Logger wrapper carrying fixed context.

ContextLogger attaches the same key-value pairs (for example the table path
and column of a sync run) to every message it emits.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger wrapper that adds contextual information to all log messages

    Usage:
        log = ContextLogger(__name__, table="/data/events", column="id")
        log.info("Reconciled high watermark", changed=True)
        # Output includes table, column and changed
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def _log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra={**self.context, **kwargs},
            stacklevel=3,
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def update_context(self, **context) -> None:
        """Add or replace context entries."""
        self.context.update(context)

    def get_context(self) -> dict[str, Any]:
        return self.context.copy()
