"""
Metrics publisher for the Prometheus HTTP endpoint.
"""

import logging
import time
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge, Info, REGISTRY, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Serves a registry on ``http://<addr>:<port>/metrics`` from the
    exporter's background thread
    """

    def __init__(
        self,
        port: int = 9091,
        addr: str = "0.0.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Args:
            port: Listen port, set with --metrics-port or METRICS_PORT
            addr: Listen address (default: all interfaces)
            registry: Registry to serve (default: global REGISTRY)
        """
        self.port = port
        self.addr = addr
        self.registry = registry or REGISTRY
        self._started = False

    def start(self) -> None:
        """
        Start serving; calling it again is a no-op

        Raises:
            RuntimeError: If the port cannot be bound
        """
        if self._started:
            return

        try:
            start_http_server(self.port, addr=self.addr, registry=self.registry)
        except OSError as e:
            raise RuntimeError(f"Metrics server could not bind port {self.port}: {e}") from e

        self._started = True
        logger.info(f"Serving metrics on {self.addr}:{self.port}/metrics")

    def is_started(self) -> bool:
        return self._started


class ApplicationInfo:
    """
    Application metadata and uptime
    """

    def __init__(
        self,
        mode: str,
        app_name: str = "anonymized-mirror",
        version: str = "1.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Args:
            mode: Run mode ("sync" or "full-reindex")
            app_name: Application name
            version: Application version
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.info = Info(
            "application",
            "Application metadata",
            registry=self.registry,
        )
        self.info.info({"name": app_name, "version": version, "mode": mode})

        self._start_time = time.time()
        self.uptime_seconds = Gauge(
            "application_uptime_seconds",
            "Application uptime in seconds",
            registry=self.registry,
        )
        self.uptime_seconds.set_function(self.get_uptime)

    def get_uptime(self) -> float:
        return time.time() - self._start_time
