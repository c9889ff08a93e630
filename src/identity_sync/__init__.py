"""
Identity column high watermark sync

Keeps the persisted high watermark of auto-generated identity columns
consistent with the data actually stored in a versioned table.

Components:
- progression: overflow-checked arithmetic over start + k * step
- watermark: the reconciliation decision procedure
- metadata: persisted identity column metadata
- table_log: directory-backed versioned table with optimistic commits
- scanner: observed extreme scans over snapshots or SQL cursors
- generator: insert-time identity value allocation
- sync: the SYNC IDENTITY command

Usage:
    from identity_sync import SyncConfig, SyncIdentityCommand

    result = SyncIdentityCommand("/data/events", "id", SyncConfig()).run()
"""

from .config import SyncConfig
from .errors import (
    CommitConflictError,
    ConfigurationError,
    ExplicitInsertNotAllowed,
    IdentityOverflowError,
    IdentitySyncError,
    InvalidTarget,
    PreconditionViolation,
)
from .metadata import IdentityColumnInfo
from .progression import next_on_progression
from .sync import SyncIdentityCommand, SyncResult, sync_identity
from .table_log import Column, Snapshot, VersionedTable
from .watermark import (
    UNSET,
    HighWatermark,
    IdentityPolicy,
    ReconcileInput,
    ReconcileOutput,
    Unset,
    Watermark,
    reconcile,
)

__version__ = "1.0.0"
__all__ = [
    "SyncConfig",
    "SyncIdentityCommand",
    "SyncResult",
    "sync_identity",
    "IdentityPolicy",
    "IdentityColumnInfo",
    "Watermark",
    "Unset",
    "UNSET",
    "HighWatermark",
    "ReconcileInput",
    "ReconcileOutput",
    "reconcile",
    "next_on_progression",
    "Column",
    "Snapshot",
    "VersionedTable",
    "IdentitySyncError",
    "InvalidTarget",
    "IdentityOverflowError",
    "PreconditionViolation",
    "CommitConflictError",
    "ExplicitInsertNotAllowed",
    "ConfigurationError",
]
