"""
Command-line argument parser configuration.
"""

import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="anonymized-mirror",
        description="Mirror the customers collection into an anonymized copy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Continuously mirror the change feed (resumes from resume_token.json)
  anonymized-mirror

  # Backfill the mirror from every existing customer, then exit
  anonymized-mirror --full-reindex

  # Start the feed from the current position, ignoring the saved token
  anonymized-mirror --reset-checkpoint

  # Read the connection string from Vault and expose Prometheus metrics
  anonymized-mirror --use-vault --metrics-port 9091
        """
    )

    parser.add_argument(
        '--full-reindex',
        action='store_true',
        help='Anonymize every existing record once and exit instead of syncing'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or INFO)'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit JSON log records'
    )
    parser.add_argument(
        '--env-file',
        default='.env',
        help='Dotenv file to load before reading the environment (default: .env)'
    )
    parser.add_argument(
        '--checkpoint-file',
        help='Resume token file (default: RESUME_TOKEN_FILE or resume_token.json)'
    )
    parser.add_argument(
        '--reset-checkpoint',
        action='store_true',
        help='Delete the saved resume token before syncing'
    )
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch the connection string from HashiCorp Vault'
    )
    parser.add_argument(
        '--vault-secret-path',
        default='secret/mongodb',
        help='Vault KV v2 path holding the "uri" field (default: secret/mongodb)'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port'
    )

    return parser
