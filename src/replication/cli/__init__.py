"""
Command-line interface for the anonymized mirror.

Exit codes:
- 0: clean shutdown after SIGINT/SIGTERM, or a finished full reindex
- 1: unknown or unhandled error
- 2: missing or invalid configuration
- 3: error while closing the database connection
"""

import asyncio
import logging
import sys

from utils.logging import configure_from_env

from ..exceptions import ConfigurationError
from .commands import (
    EXIT_CLOSE_ERROR,
    EXIT_CONFIGURATION_ERROR,
    EXIT_OK,
    EXIT_UNKNOWN_ERROR,
    cmd_full_reindex,
    cmd_sync,
    run,
)
from .config import load_settings
from .parser import create_parser

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the anonymized-mirror CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_env(level=args.log_level, json_format=args.json_logs or None)

    try:
        settings = load_settings(args)
        exit_code = asyncio.run(run(args, settings))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(EXIT_CONFIGURATION_ERROR)
    except Exception:
        logger.exception("Unknown error occurred")
        sys.exit(EXIT_UNKNOWN_ERROR)

    sys.exit(exit_code)


__all__ = [
    'main',
    'run',
    'cmd_sync',
    'cmd_full_reindex',
    'load_settings',
    'create_parser',
    'EXIT_OK',
    'EXIT_UNKNOWN_ERROR',
    'EXIT_CONFIGURATION_ERROR',
    'EXIT_CLOSE_ERROR',
]


if __name__ == '__main__':
    main()
