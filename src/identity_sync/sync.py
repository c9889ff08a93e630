"""
SYNC IDENTITY command.

Wires the watermark reconciler to the table log:

1. Validate the target (versioned table, existing identity column) before
   any scan or commit
2. Read a snapshot, scan the observed extreme, reconcile
3. Commit a schema whose only difference is the identity column's
   watermark entry
4. On a commit conflict, start over from step 2 against a fresh snapshot

The command either commits the new metadata in full or leaves the table
untouched.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import IdentitySyncMetrics
from utils.retry import retry_with_backoff
from utils.tracing import add_span_attributes, add_span_event, trace_operation

from .config import SyncConfig
from .errors import CommitConflictError
from .metadata import rewrite_watermark
from .scanner import SnapshotScanner
from .table_log import Snapshot, VersionedTable, metadata_action
from .watermark import ReconcileInput, Watermark, reconcile

logger = logging.getLogger(__name__)

SYNC_OPERATION = "SYNC IDENTITY"


class Scanner(Protocol):
    def scan(self, snapshot: Snapshot, column: str, step: int) -> int | None:
        ...


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync run."""

    table: str
    column: str
    previous: Watermark
    new: Watermark
    changed: bool
    observed_extreme: int | None
    version: int | None
    attempts: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "column": self.column,
            "previous_high_watermark": self.previous.to_optional(),
            "new_high_watermark": self.new.to_optional(),
            "changed": self.changed,
            "observed_extreme": self.observed_extreme,
            "version": self.version,
            "attempts": self.attempts,
        }


class SyncIdentityCommand:
    """Recomputes the high watermark of one identity column from live data."""

    def __init__(
        self,
        table_path: str,
        column: str,
        config: SyncConfig | None = None,
        scanner: Scanner | None = None,
        metrics: IdentitySyncMetrics | None = None,
    ):
        """
        Initialize the command.

        Args:
            table_path: Path of the versioned table
            column: Identity column to sync
            config: Run options (defaults to SyncConfig())
            scanner: Observed extreme scanner (defaults to SnapshotScanner)
            metrics: Optional Prometheus metrics sink
        """
        self.table_path = str(table_path)
        self.column = column
        self.config = config or SyncConfig()
        self.scanner = scanner or SnapshotScanner()
        self.metrics = metrics
        self.log = ContextLogger(__name__, table=self.table_path, column=column)

    def validate(self) -> VersionedTable:
        """
        Check the target qualifies for sync.

        Raises:
            InvalidTarget: If the table is not a versioned table, or the
                column is missing or not an identity column
        """
        table = VersionedTable.open(self.table_path)
        table.snapshot().column(self.column).identity_info()
        return table

    def run(self) -> SyncResult:
        """
        Execute the sync.

        Returns:
            SyncResult describing the decision and the committed version

        Raises:
            InvalidTarget: If the target does not qualify
            IdentityOverflowError: If the repaired watermark overflows int64
            CommitConflictError: If every retry lost against concurrent writers
        """
        with trace_operation(
            "sync_identity",
            kind=trace.SpanKind.INTERNAL,
            table=self.table_path,
            column=self.column,
            allow_lowering=self.config.allow_lowering,
        ):
            start_time = time.time()
            attempts = 0

            try:
                table = self.validate()

                def on_retry(attempt: int, exc: Exception, delay: float) -> None:
                    add_span_event("commit_conflict", attempt=attempt, delay=delay)
                    if self.metrics:
                        self.metrics.record_commit_conflict(self.table_path)

                @retry_with_backoff(
                    max_retries=self.config.max_commit_retries,
                    base_delay=self.config.retry_base_delay,
                    max_delay=5.0,
                    retryable_exceptions=(CommitConflictError,),
                    on_retry=on_retry,
                )
                def attempt() -> SyncResult:
                    nonlocal attempts
                    attempts += 1
                    return self._attempt(table, attempts)

                result = attempt()

            except Exception as e:
                self.log.error(f"SYNC IDENTITY failed: {type(e).__name__}: {e}")
                if self.metrics:
                    self.metrics.record_sync_run(
                        self.table_path, self.column, "failed", time.time() - start_time
                    )
                raise

            outcome = "updated" if result.changed else "unchanged"
            add_span_attributes(outcome=outcome, attempts=attempts)
            if self.metrics:
                self.metrics.record_sync_run(
                    self.table_path, self.column, outcome, time.time() - start_time
                )
                self.metrics.set_high_watermark(
                    self.table_path, self.column, result.new.to_optional()
                )
            return result

    def _attempt(self, table: VersionedTable, attempt: int) -> SyncResult:
        with trace_operation("sync_identity_attempt", attempt=attempt):
            return self._reconcile_and_commit(table, attempt)

    def _reconcile_and_commit(self, table: VersionedTable, attempt: int) -> SyncResult:
        snapshot = table.snapshot()
        column = snapshot.column(self.column)
        info = column.identity_info()

        extreme = self.scanner.scan(snapshot, self.column, info.policy.step)
        output = reconcile(
            ReconcileInput(
                policy=info.policy,
                existing=info.watermark,
                observed_extreme=extreme,
                allow_lowering=self.config.allow_lowering,
            )
        )

        self.log.info(
            f"Reconciled high watermark at version {snapshot.version}: "
            f"{info.watermark.to_optional()} -> {output.new_watermark.to_optional()}",
            observed_extreme=extreme,
            changed=output.changed,
            attempt=attempt,
        )

        version = None
        if output.changed:
            new_column = column.with_metadata(
                rewrite_watermark(column.metadata, output.new_watermark)
            )
            version = table.commit(
                snapshot.version,
                [metadata_action(snapshot.schema_with_column(new_column))],
                operation=SYNC_OPERATION,
            )

        return SyncResult(
            table=self.table_path,
            column=self.column,
            previous=info.watermark,
            new=output.new_watermark,
            changed=output.changed,
            observed_extreme=extreme,
            version=version,
            attempts=attempt,
        )


def sync_identity(
    table_path: str,
    column: str,
    config: SyncConfig | None = None,
    metrics: IdentitySyncMetrics | None = None,
) -> SyncResult:
    """Convenience wrapper running SyncIdentityCommand once."""
    return SyncIdentityCommand(table_path, column, config=config, metrics=metrics).run()
