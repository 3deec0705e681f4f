"""
Unit tests for utils.metrics

Covers MetricsPublisher, ApplicationInfo and ReplicationMetrics.
"""

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from utils.metrics import ApplicationInfo, MetricsPublisher, ReplicationMetrics


class TestMetricsPublisher:
    """Test MetricsPublisher class"""

    def test_init_with_default_port(self):
        publisher = MetricsPublisher()

        assert publisher.port == 9091
        assert publisher.is_started() is False

    @patch("utils.metrics.publisher.start_http_server")
    def test_start(self, mock_start):
        """Server starts once on the given registry"""
        registry = CollectorRegistry()
        publisher = MetricsPublisher(port=9100, registry=registry)

        publisher.start()
        publisher.start()

        mock_start.assert_called_once_with(9100, addr="0.0.0.0", registry=registry)
        assert publisher.is_started() is True

    @patch("utils.metrics.publisher.start_http_server")
    def test_start_port_in_use(self, mock_start):
        """Bind failures surface as RuntimeError"""
        mock_start.side_effect = OSError("Address already in use")

        with pytest.raises(RuntimeError, match="could not bind port 9100"):
            MetricsPublisher(port=9100, registry=CollectorRegistry()).start()


class TestApplicationInfo:
    """Test ApplicationInfo class"""

    def test_info_labels(self):
        registry = CollectorRegistry()

        ApplicationInfo(mode="sync", registry=registry)

        assert registry.get_sample_value(
            "application_info",
            {"name": "anonymized-mirror", "version": "1.0.0", "mode": "sync"},
        ) == 1.0

    def test_uptime(self):
        registry = CollectorRegistry()
        info = ApplicationInfo(mode="full-reindex", registry=registry)

        assert info.get_uptime() >= 0
        assert registry.get_sample_value("application_uptime_seconds") >= 0


class TestReplicationMetrics:
    """Test ReplicationMetrics recording"""

    @pytest.fixture
    def metrics(self):
        return ReplicationMetrics(registry=CollectorRegistry())

    def sample(self, metrics, name, labels=None):
        return metrics.registry.get_sample_value(name, labels or {})

    def test_events(self, metrics):
        metrics.record_event("insert")
        metrics.record_event("insert")
        metrics.record_dropped("unsupported")

        assert self.sample(metrics, "replication_events_received_total", {"operation": "insert"}) == 2.0
        assert self.sample(
            metrics, "replication_events_dropped_total", {"reason": "unsupported"}
        ) == 1.0

    def test_successful_flush(self, metrics):
        """Successful flushes count written documents"""
        metrics.record_flush("timer", success=True, documents=5, duration=0.02)

        assert self.sample(
            metrics, "replication_flushes_total", {"trigger": "timer", "status": "success"}
        ) == 1.0
        assert self.sample(metrics, "replication_documents_written_total", {"mode": "sync"}) == 5.0
        assert self.sample(metrics, "replication_flush_duration_seconds_count") == 1.0

    def test_failed_flush(self, metrics):
        """Failed flushes write no documents"""
        metrics.record_flush("size", success=False, documents=5, duration=0.02)

        assert self.sample(
            metrics, "replication_flushes_total", {"trigger": "size", "status": "failed"}
        ) == 1.0
        assert self.sample(metrics, "replication_documents_written_total", {"mode": "sync"}) is None

    def test_pending_and_discarded(self, metrics):
        metrics.set_pending(7)
        assert self.sample(metrics, "replication_pending_updates") == 7.0

        metrics.record_discarded(7)

        assert self.sample(metrics, "replication_pending_updates") == 0.0
        assert self.sample(metrics, "replication_updates_discarded_total") == 7.0

    def test_checkpoint_saves(self, metrics):
        metrics.record_checkpoint_save(True)
        metrics.record_checkpoint_save(False)

        assert self.sample(metrics, "replication_checkpoint_saves_total", {"status": "success"}) == 1.0
        assert self.sample(metrics, "replication_checkpoint_saves_total", {"status": "failed"}) == 1.0

    def test_checkpoint_held(self, metrics):
        metrics.set_checkpoint_held(True)
        assert self.sample(metrics, "replication_checkpoint_held") == 1.0

        metrics.set_checkpoint_held(False)
        assert self.sample(metrics, "replication_checkpoint_held") == 0.0

    def test_reindex_batches(self, metrics):
        metrics.record_reindex_batch(100)
        metrics.record_reindex_batch(50)

        assert self.sample(
            metrics, "replication_documents_written_total", {"mode": "reindex"}
        ) == 150.0
