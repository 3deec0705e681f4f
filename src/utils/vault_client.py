"""
HashiCorp Vault client for fetching the mirror's connection string

Reads secrets from the KV v2 secrets engine over Vault's HTTP API.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PATH = "secret/mongodb"


class VaultClient:
    """
    HashiCorp Vault client for secrets management
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: HTTP timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )
        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")
        self.headers = {"X-Vault-Token": self.vault_token}
        if namespace:
            self.headers["X-Vault-Namespace"] = namespace

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch secret data from the KV v2 secrets engine

        Args:
            secret_path: Path to secret (e.g., "secret/mongodb")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If secret_path is invalid or holds no data
            requests.RequestException: If the Vault request fails
        """
        if not secret_path or '..' in secret_path or not re.match(r'^[a-zA-Z0-9/_-]+$', secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path!r}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        # KV v2 requires /data/ after the mount point
        if "/data/" not in secret_path:
            mount, _, rest = secret_path.partition("/")
            secret_path = f"{mount}/data/{rest}" if rest else f"{mount}/data"

        response = requests.get(
            f"{self.vault_addr}/v1/{secret_path}",
            headers=self.headers,
            timeout=self.timeout,
        )

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")

        return secret_data

    def get_connection_uri(self, secret_path: str = DEFAULT_SECRET_PATH) -> str:
        """
        Fetch the database connection string stored under ``uri``

        Raises:
            ValueError: If the secret has no ``uri`` field
        """
        secret = self.get_secret(secret_path)

        if not secret.get("uri"):
            raise ValueError(f"Missing required field 'uri' in secret at {secret_path}")

        logger.info("Fetched connection string from Vault")
        return secret["uri"]
