"""
Metrics publisher for the Prometheus HTTP endpoint.

Starts the HTTP server that exposes /metrics and publishes application info.
"""

import logging
import time
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, Info, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Exposes a registry on /metrics over HTTP."""

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """
        Start the metrics HTTP server

        Raises:
            RuntimeError: If the port is already in use
        """
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            logger.error(f"Cannot start metrics server on port {self.port}: {e}")
            raise RuntimeError(f"Metrics server port {self.port} is unavailable: {e}") from e

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        return self._server_started


class ApplicationInfo:
    """Application name, version and uptime."""

    def __init__(
        self,
        app_name: str = "identity-sync",
        version: str = "1.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        self.registry = registry or REGISTRY

        self.info = Info(
            "identity_sync_application",
            "Application metadata",
            registry=self.registry,
        )
        self.info.info({"name": app_name, "version": version})

        self._start_time = time.time()
        self.uptime_seconds = Gauge(
            "identity_sync_uptime_seconds",
            "Application uptime in seconds",
            registry=self.registry,
        )

    def update_uptime(self) -> None:
        self.uptime_seconds.set(self.get_uptime())

    def get_uptime(self) -> float:
        return time.time() - self._start_time
