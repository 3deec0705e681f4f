"""
Logger wrappers.

Provides ContextLogger for attaching fixed context to every message.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger that sends a fixed set of ``extra`` fields with every record

    Usage:
        log = ContextLogger(__name__, source="customers", target="customers_anonymised")
        log.info("Updated 200 documents", batch=2)

        batch_log = log.bind(batch=3)
        batch_log.warning("Slow bulk write")
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self._context = context

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def bind(self, **context) -> "ContextLogger":
        """Return a logger for the same name with ``context`` merged in."""
        return ContextLogger(self.logger.name, **{**self._context, **context})

    def log(self, level: int, msg: str, *args, exc_info=None, **fields) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, msg, *args, exc_info=exc_info, extra={**self._context, **fields})

    def debug(self, msg: str, *args, **fields) -> None:
        self.log(logging.DEBUG, msg, *args, **fields)

    def info(self, msg: str, *args, **fields) -> None:
        self.log(logging.INFO, msg, *args, **fields)

    def warning(self, msg: str, *args, **fields) -> None:
        self.log(logging.WARNING, msg, *args, **fields)

    def error(self, msg: str, *args, exc_info=None, **fields) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **fields)
