"""
Structured logging for the anonymized mirror.

Provides JSON-formatted or coloured console logging with contextual
fields, configured once at process startup.

Usage:
    from utils.logging import setup_logging

    setup_logging(level="INFO", json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Flushed batch", extra={"documents": 250})
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
