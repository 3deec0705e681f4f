"""
Distributed tracing using OpenTelemetry.

Spans cover batch flushes, checkpoint writes and reindex batches.
Without ``initialize_tracing()`` every span is a no-op.
"""

from .context import trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
]
