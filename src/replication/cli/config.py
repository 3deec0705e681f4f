"""
Settings loading for the CLI.

Precedence: command-line flags, then Vault (with --use-vault), then the
environment, which is seeded from a dotenv file.
"""

import argparse
import dataclasses
import logging

from dotenv import load_dotenv

from utils.vault_client import VaultClient

from ..exceptions import ConfigurationError
from ..settings import SyncSettings

logger = logging.getLogger(__name__)


def get_connection_uri_from_vault(args: argparse.Namespace) -> str:
    """
    Fetch the connection string from Vault

    Raises:
        ConfigurationError: If Vault is not configured or the secret lacks a uri
    """
    try:
        return VaultClient().get_connection_uri(args.vault_secret_path)
    except ValueError as e:
        raise ConfigurationError(f"Failed to fetch connection string from Vault: {e}") from e


def load_settings(args: argparse.Namespace) -> SyncSettings:
    """
    Resolve settings for this run

    Args:
        args: Parsed command-line arguments

    Returns:
        SyncSettings

    Raises:
        ConfigurationError: If the connection string is missing or a value is invalid
    """
    if args.env_file and load_dotenv(args.env_file):
        logger.debug(f"Loaded environment from {args.env_file}")

    db_uri = get_connection_uri_from_vault(args) if args.use_vault else None
    settings = SyncSettings.from_env(db_uri=db_uri)

    overrides = {}
    if args.checkpoint_file:
        overrides["resume_token_file"] = args.checkpoint_file
    if args.metrics_port:
        overrides["metrics_port"] = args.metrics_port

    return dataclasses.replace(settings, **overrides) if overrides else settings
