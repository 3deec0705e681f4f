"""
Shared infrastructure for the anonymized mirror

Provides:
- logging: structured log setup
- metrics: Prometheus metrics
- tracing: OpenTelemetry spans
- retry: async exponential backoff
- vault_client: HashiCorp Vault secrets lookup
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "retry", "vault_client"]
