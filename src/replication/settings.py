"""
Runtime settings for the anonymized mirror.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .exceptions import ConfigurationError


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _float_setting(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class SyncSettings:
    """Settings shared by the sync and full-reindex modes."""

    db_uri: str
    db_name: str | None = None
    source_collection: str = "customers"
    target_collection: str = "customers_anonymised"
    resume_token_file: str = "resume_token.json"
    max_batch_size: int = 1000
    flush_interval: float = 1.0
    poll_interval_ms: int = 200
    reindex_batch_size: int = 100
    metrics_port: int | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        db_uri: str | None = None,
    ) -> "SyncSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Variables to read (default: os.environ)
            db_uri: Connection string overriding DB_URI

        Raises:
            ConfigurationError: If DB_URI is missing or a value is malformed
        """
        environ = os.environ if environ is None else environ

        db_uri = db_uri or environ.get("DB_URI")
        if not db_uri:
            raise ConfigurationError("DB_URI is not set")

        metrics_port = _int_setting(environ, "METRICS_PORT", 0)

        settings = cls(
            db_uri=db_uri,
            db_name=environ.get("DB_NAME") or None,
            source_collection=environ.get("SOURCE_COLLECTION", cls.source_collection),
            target_collection=environ.get("TARGET_COLLECTION", cls.target_collection),
            resume_token_file=environ.get("RESUME_TOKEN_FILE", cls.resume_token_file),
            max_batch_size=_int_setting(environ, "MAX_BATCH_SIZE", cls.max_batch_size),
            flush_interval=_float_setting(environ, "FLUSH_INTERVAL_SECONDS", cls.flush_interval),
            poll_interval_ms=_int_setting(environ, "POLL_INTERVAL_MS", cls.poll_interval_ms),
            reindex_batch_size=_int_setting(environ, "REINDEX_BATCH_SIZE", cls.reindex_batch_size),
            metrics_port=metrics_port or None,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.max_batch_size < 1 or self.reindex_batch_size < 1:
            raise ConfigurationError("Batch sizes must be at least 1")
        if self.flush_interval <= 0:
            raise ConfigurationError("FLUSH_INTERVAL_SECONDS must be positive")
        if self.poll_interval_ms < 1:
            raise ConfigurationError("POLL_INTERVAL_MS must be at least 1")
