"""
Metrics for change-feed replication and full reindex runs.

Tracks events consumed, dropped updates, bulk-write flushes and
checkpoint persistence.
"""

import logging
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class ReplicationMetrics:
    """
    Metrics for the anonymizing replication pipeline

    Pass a dedicated ``CollectorRegistry`` when more than one instance
    lives in the same process (tests, embedded use).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize replication metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.events_received_total = Counter(
            "replication_events_received_total",
            "Change events received from the feed",
            ["operation"],
            registry=self.registry,
        )

        self.events_dropped_total = Counter(
            "replication_events_dropped_total",
            "Change events that produced no pending update",
            ["reason"],
            registry=self.registry,
        )

        self.feed_errors_total = Counter(
            "replication_feed_errors_total",
            "Subscription-level errors raised by the change feed",
            registry=self.registry,
        )

        self.pending_updates = Gauge(
            "replication_pending_updates",
            "Updates queued for the next flush",
            registry=self.registry,
        )

        self.updates_discarded_total = Counter(
            "replication_updates_discarded_total",
            "Queued updates discarded at shutdown",
            registry=self.registry,
        )

        self.flushes_total = Counter(
            "replication_flushes_total",
            "Bulk write flushes",
            ["trigger", "status"],
            registry=self.registry,
        )

        self.flush_duration_seconds = Histogram(
            "replication_flush_duration_seconds",
            "Duration of bulk write flushes in seconds",
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
            registry=self.registry,
        )

        self.documents_written_total = Counter(
            "replication_documents_written_total",
            "Documents upserted into the anonymized collection",
            ["mode"],
            registry=self.registry,
        )

        self.checkpoint_saves_total = Counter(
            "replication_checkpoint_saves_total",
            "Resume token writes",
            ["status"],
            registry=self.registry,
        )

        self.checkpoint_held = Gauge(
            "replication_checkpoint_held",
            "1 while the resume token is held after a failed bulk write",
            registry=self.registry,
        )

    def record_event(self, operation: str) -> None:
        self.events_received_total.labels(operation=operation).inc()

    def record_dropped(self, reason: str) -> None:
        self.events_dropped_total.labels(reason=reason).inc()

    def record_feed_error(self) -> None:
        self.feed_errors_total.inc()

    def set_pending(self, count: int) -> None:
        self.pending_updates.set(count)

    def record_discarded(self, count: int) -> None:
        self.updates_discarded_total.inc(count)
        self.pending_updates.set(0)

    def record_flush(
        self,
        trigger: str,
        success: bool,
        documents: int,
        duration: float,
    ) -> None:
        """
        Record a streaming flush

        Args:
            trigger: What started the flush ("timer" or "size")
            success: Whether the bulk write was acknowledged
            documents: Number of updates in the batch
            duration: Time spent in the bulk write in seconds
        """
        status = "success" if success else "failed"

        self.flushes_total.labels(trigger=trigger, status=status).inc()
        self.flush_duration_seconds.observe(duration)

        if success:
            self.documents_written_total.labels(mode="sync").inc(documents)

    def record_reindex_batch(self, documents: int) -> None:
        self.documents_written_total.labels(mode="reindex").inc(documents)

    def record_checkpoint_save(self, success: bool) -> None:
        status = "success" if success else "failed"
        self.checkpoint_saves_total.labels(status=status).inc()

    def set_checkpoint_held(self, held: bool) -> None:
        self.checkpoint_held.set(1 if held else 0)
