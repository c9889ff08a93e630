"""
Prometheus metrics for identity sync

Usage:
    from utils.metrics import MetricsPublisher, IdentitySyncMetrics

    # Expose /metrics
    publisher = MetricsPublisher(port=9091)
    publisher.start()

    # Record sync runs
    sync_metrics = IdentitySyncMetrics()
    sync_metrics.record_sync_run("/data/events", "id", "updated", duration=0.42)
"""

import logging
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import ApplicationInfo, MetricsPublisher
from .sync import IdentitySyncMetrics

logger = logging.getLogger(__name__)


_sync_metrics: dict[CollectorRegistry, IdentitySyncMetrics] = {}


def get_sync_metrics(registry: CollectorRegistry = REGISTRY) -> IdentitySyncMetrics:
    """IdentitySyncMetrics bound to registry, created once per registry."""
    if registry not in _sync_metrics:
        _sync_metrics[registry] = IdentitySyncMetrics(registry=registry)
    return _sync_metrics[registry]


def initialize_metrics(
    port: int = 9091,
    registry: CollectorRegistry | None = None,
) -> dict[str, Any]:
    """
    Start the metrics server and create the sync metrics

    Args:
        port: Port to expose metrics on (default: 9091)
        registry: Custom Prometheus registry (default: global REGISTRY)

    Returns:
        Dictionary with 'publisher', 'sync' and 'app_info' entries
    """
    registry = registry or REGISTRY
    logger.info(f"Initializing metrics on port {port}")

    publisher = MetricsPublisher(port=port, registry=registry)
    publisher.start()

    return {
        "publisher": publisher,
        "sync": get_sync_metrics(registry),
        "app_info": ApplicationInfo(registry=registry),
    }


__all__ = [
    "MetricsPublisher",
    "ApplicationInfo",
    "IdentitySyncMetrics",
    "get_sync_metrics",
    "initialize_metrics",
]
