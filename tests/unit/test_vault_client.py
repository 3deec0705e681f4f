"""
Unit tests for utils.vault_client

Covers initialization, KV v2 secret retrieval and connection string lookup.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from utils.vault_client import VaultClient


def vault_response(status_code=200, data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {"data": {"data": data or {}}}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def client():
    return VaultClient(vault_addr="https://vault.example.com/", vault_token="test-token")


class TestVaultClientInit:
    """Test VaultClient initialization scenarios"""

    def test_init_with_explicit_parameters(self, client):
        assert client.vault_addr == "https://vault.example.com"
        assert client.headers == {"X-Vault-Token": "test-token"}

    def test_init_from_environment(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token")

        client = VaultClient()

        assert client.vault_addr == "https://vault.env.com"
        assert client.vault_token == "env-token"

    def test_namespace_header(self):
        client = VaultClient(vault_addr="https://v", vault_token="t", namespace="team")

        assert client.headers["X-Vault-Namespace"] == "team"

    @pytest.mark.parametrize("missing", ["VAULT_ADDR", "VAULT_TOKEN"])
    def test_missing_settings_raise(self, monkeypatch, missing):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token")
        monkeypatch.delenv(missing)

        with pytest.raises(ValueError, match="not provided"):
            VaultClient()


class TestGetSecret:
    """Test VaultClient.get_secret"""

    @patch("utils.vault_client.requests.get")
    def test_adds_data_segment(self, mock_get, client):
        """KV v2 paths get /data/ after the mount"""
        mock_get.return_value = vault_response(data={"uri": "mongodb://db"})

        assert client.get_secret("secret/mongodb") == {"uri": "mongodb://db"}
        mock_get.assert_called_once_with(
            "https://vault.example.com/v1/secret/data/mongodb",
            headers={"X-Vault-Token": "test-token"},
            timeout=10.0,
        )

    @patch("utils.vault_client.requests.get")
    def test_keeps_explicit_data_segment(self, mock_get, client):
        mock_get.return_value = vault_response(data={"uri": "mongodb://db"})

        client.get_secret("secret/data/mongodb")

        assert mock_get.call_args.args[0] == "https://vault.example.com/v1/secret/data/mongodb"

    @pytest.mark.parametrize("path", ["", "secret/../root", "secret/mongo db", "secret;rm"])
    def test_invalid_path(self, client, path):
        with pytest.raises(ValueError, match="Invalid secret_path"):
            client.get_secret(path)

    @patch("utils.vault_client.requests.get")
    def test_not_found(self, mock_get, client):
        mock_get.return_value = vault_response(status_code=404)

        with pytest.raises(ValueError, match="Secret not found"):
            client.get_secret("secret/mongodb")

    @patch("utils.vault_client.requests.get")
    def test_http_error(self, mock_get, client):
        mock_get.return_value = vault_response(status_code=403)

        with pytest.raises(requests.HTTPError):
            client.get_secret("secret/mongodb")

    @patch("utils.vault_client.requests.get")
    def test_empty_secret(self, mock_get, client):
        mock_get.return_value = vault_response(data={})

        with pytest.raises(ValueError, match="No data found"):
            client.get_secret("secret/mongodb")


class TestGetConnectionUri:
    """Test VaultClient.get_connection_uri"""

    @patch("utils.vault_client.requests.get")
    def test_returns_uri(self, mock_get, client):
        mock_get.return_value = vault_response(data={"uri": "mongodb://user:pw@db/shop"})

        assert client.get_connection_uri() == "mongodb://user:pw@db/shop"

    @patch("utils.vault_client.requests.get")
    def test_missing_uri_field(self, mock_get, client):
        mock_get.return_value = vault_response(data={"username": "app"})

        with pytest.raises(ValueError, match="Missing required field 'uri'"):
            client.get_connection_uri("secret/mongodb")
