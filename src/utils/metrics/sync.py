"""
Metrics for identity sync runs.

Tracks sync outcomes, durations, commit conflicts and the current high
watermark of each synced identity column.
"""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

SYNC_OUTCOMES = ("updated", "unchanged", "failed")


class IdentitySyncMetrics:
    """
    Metrics for SYNC IDENTITY runs

    Tracks runs by outcome, run duration, commit conflicts and watermarks.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize sync metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.sync_runs_total = Counter(
            "identity_sync_runs_total",
            "Total number of identity sync runs",
            ["table", "column", "outcome"],
            registry=self.registry,
        )

        self.sync_duration_seconds = Histogram(
            "identity_sync_duration_seconds",
            "Duration of identity sync runs in seconds",
            ["table"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60),
            registry=self.registry,
        )

        self.commit_conflicts_total = Counter(
            "identity_sync_commit_conflicts_total",
            "Optimistic commit conflicts hit by identity sync",
            ["table"],
            registry=self.registry,
        )

        self.high_watermark = Gauge(
            "identity_high_watermark",
            "High watermark of an identity column after the last sync",
            ["table", "column"],
            registry=self.registry,
        )

        self.high_watermark_exact = Info(
            "identity_high_watermark_exact",
            "Exact int64 high watermark of an identity column after the last sync",
            ["table", "column"],
            registry=self.registry,
        )

    def record_sync_run(self, table: str, column: str, outcome: str, duration: float) -> None:
        """
        Record a finished sync run

        Args:
            table: Table path
            column: Identity column
            outcome: One of 'updated', 'unchanged', 'failed'
            duration: Duration in seconds
        """
        if outcome not in SYNC_OUTCOMES:
            raise ValueError(f"Unknown sync outcome: {outcome}")

        self.sync_runs_total.labels(table=table, column=column, outcome=outcome).inc()
        self.sync_duration_seconds.labels(table=table).observe(duration)

        logger.debug(
            f"Recorded sync run: table={table}, column={column}, "
            f"outcome={outcome}, duration={duration:.3f}s"
        )

    def record_commit_conflict(self, table: str) -> None:
        self.commit_conflicts_total.labels(table=table).inc()

    def set_high_watermark(self, table: str, column: str, value: int | None) -> None:
        """
        Publish the watermark

        The gauge is a float64 and rounds values beyond 2**53; the exact
        int64 value is published as the "value" label of
        identity_high_watermark_exact. An unset watermark leaves both untouched.
        """
        if value is None:
            return
        self.high_watermark.labels(table=table, column=column).set(value)
        self.high_watermark_exact.labels(table=table, column=column).info({"value": str(value)})
