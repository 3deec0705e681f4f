"""
Prometheus metrics for the anonymized mirror

Usage:
    from utils.metrics import MetricsPublisher, ReplicationMetrics

    publisher = MetricsPublisher(port=9091)
    publisher.start()

    metrics = ReplicationMetrics()
    metrics.record_flush("timer", success=True, documents=120, duration=0.04)
"""

from .publisher import ApplicationInfo, MetricsPublisher
from .replication import ReplicationMetrics

__all__ = [
    "MetricsPublisher",
    "ApplicationInfo",
    "ReplicationMetrics",
]
