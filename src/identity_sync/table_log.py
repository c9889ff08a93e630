"""
Directory-backed, versioned table with an optimistic commit protocol.

A table is a directory containing a ``_txn_log/`` folder of numbered JSON
commit files. Each commit holds a list of actions:

- metaData: full replacement of the column list (name, type, nullable, metadata)
- add: rows appended by the commit, each tagged with a stable ``_row_id``
- remove: row ids deleted by the commit

A snapshot is the replay of every commit up to a version. Writers read a
snapshot, build their actions against it, and commit ``read_version + 1``.
The commit file is linked into place exclusively, so when two writers race
exactly one wins and the other gets CommitConflictError.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable

from opentelemetry import trace

from utils.tracing import trace_operation

from .errors import CommitConflictError, InvalidTarget
from .generator import fill_identity_values
from .metadata import IdentityColumnInfo, is_identity_metadata

logger = logging.getLogger(__name__)

LOG_DIR_NAME = "_txn_log"
ROW_ID_FIELD = "_row_id"
COMMIT_FILE_PATTERN = re.compile(r"^(\d{20})\.json$")


@dataclass(frozen=True)
class Column:
    """One column of the table schema."""

    name: str
    type: str = "long"
    nullable: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_identity(self) -> bool:
        return is_identity_metadata(self.metadata)

    def identity_info(self) -> IdentityColumnInfo:
        """Parse identity info, raising InvalidTarget for non-identity columns."""
        if not self.is_identity:
            raise InvalidTarget(f"Column {self.name} is not an IDENTITY column")
        return IdentityColumnInfo.from_metadata(self.metadata)

    def with_metadata(self, metadata: dict[str, Any]) -> "Column":
        return Column(self.name, self.type, self.nullable, dict(metadata))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        return cls(
            name=data["name"],
            type=data.get("type", "long"),
            nullable=data.get("nullable", True),
            metadata=dict(data.get("metadata", {})),
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of the table at one version."""

    version: int
    columns: tuple[Column, ...]
    rows: tuple[dict[str, Any], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column(self, name: str) -> Column:
        """
        Resolve a column by name.

        Raises:
            InvalidTarget: If the column does not exist
        """
        for column in self.columns:
            if column.name == name:
                return column
        raise InvalidTarget(f"Column {name} does not exist in table schema")

    def values(self, name: str) -> list[Any]:
        """All values of a column, one per live row."""
        self.column(name)
        return [row.get(name) for row in self.rows]

    def schema_with_column(self, replacement: Column) -> list[Column]:
        """Column list with one column replaced, every other column unchanged."""
        return [replacement if c.name == replacement.name else c for c in self.columns]


def metadata_action(columns: list[Column]) -> dict[str, Any]:
    return {"metaData": {"columns": [c.to_dict() for c in columns]}}


class VersionedTable:
    """Table stored as a log of JSON commits under ``<path>/_txn_log``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.log_dir = self.path / LOG_DIR_NAME

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def is_versioned_table(path: str | Path) -> bool:
        """Check whether path holds a table of this format."""
        log_dir = Path(path) / LOG_DIR_NAME
        if not log_dir.is_dir():
            return False
        return any(COMMIT_FILE_PATTERN.match(p.name) for p in log_dir.iterdir())

    @classmethod
    def open(cls, path: str | Path) -> "VersionedTable":
        """
        Open an existing table.

        Raises:
            InvalidTarget: If path is not a versioned table
        """
        if not cls.is_versioned_table(path):
            raise InvalidTarget(
                f"{path} is not a versioned table: SYNC IDENTITY is only supported "
                f"on tables with a {LOG_DIR_NAME} commit log"
            )
        return cls(path)

    @classmethod
    def create(cls, path: str | Path, columns: list[Column]) -> "VersionedTable":
        """
        Create a new table with the given schema at version 0.

        Raises:
            ValueError: If the schema has duplicate column names
            CommitConflictError: If a table already exists at path
        """
        names = [c.name for c in columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate column names in schema: {names}")

        table = cls(path)
        table.log_dir.mkdir(parents=True, exist_ok=True)
        table.commit(-1, [metadata_action(list(columns))], operation="CREATE TABLE")
        logger.info(f"Created table at {table.path} with columns {names}")
        return table

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _commit_file(self, version: int) -> Path:
        return self.log_dir / f"{version:020d}.json"

    def latest_version(self) -> int:
        versions = []
        for p in self.log_dir.iterdir():
            match = COMMIT_FILE_PATTERN.match(p.name)
            if match:
                versions.append(int(match.group(1)))
        if not versions:
            raise InvalidTarget(f"{self.path} has an empty commit log")
        return max(versions)

    def read_commit(self, version: int) -> dict[str, Any]:
        commit_file = self._commit_file(version)
        if not commit_file.exists():
            raise InvalidTarget(f"Commit log of {self.path} is missing version {version}")
        with open(commit_file) as f:
            return json.load(f)

    def snapshot(self, version: int | None = None) -> Snapshot:
        """
        Replay the log into a snapshot.

        Args:
            version: Version to read (defaults to the latest)

        Returns:
            Snapshot at that version
        """
        with trace_operation(
            "table_log_snapshot",
            kind=trace.SpanKind.INTERNAL,
            table=str(self.path),
        ):
            if version is None:
                version = self.latest_version()

            columns: list[Column] = []
            rows: dict[str, dict[str, Any]] = {}

            for v in range(version + 1):
                for action in self.read_commit(v)["actions"]:
                    if "metaData" in action:
                        columns = [Column.from_dict(c) for c in action["metaData"]["columns"]]
                    elif "add" in action:
                        for row in action["add"]["rows"]:
                            rows[row[ROW_ID_FIELD]] = row
                    elif "remove" in action:
                        for row_id in action["remove"]["rowIds"]:
                            rows.pop(row_id, None)

            logger.debug(f"Loaded snapshot of {self.path} at version {version}: {len(rows)} rows")
            return Snapshot(version=version, columns=tuple(columns), rows=tuple(rows.values()))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(self, read_version: int, actions: list[dict[str, Any]], operation: str) -> int:
        """
        Commit actions as version read_version + 1.

        Args:
            read_version: Version of the snapshot the actions were built against
            actions: Actions to commit
            operation: Human readable operation name stored in the commit

        Returns:
            The committed version

        Raises:
            CommitConflictError: If another writer already committed that version
        """
        version = read_version + 1
        with trace_operation(
            "table_log_commit",
            kind=trace.SpanKind.INTERNAL,
            table=str(self.path),
            version=version,
            operation=operation,
        ):
            commit = {
                "version": version,
                "timestamp": datetime.now(UTC).isoformat(),
                "operation": operation,
                "actions": actions,
            }

            fd, tmp_name = tempfile.mkstemp(prefix=".commit-", suffix=".tmp", dir=self.log_dir)
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(commit, f, indent=2)
                os.link(tmp_name, self._commit_file(version))
            except FileExistsError:
                logger.warning(f"Commit conflict on {self.path} at version {version}")
                raise CommitConflictError(str(self.path), version) from None
            finally:
                os.unlink(tmp_name)

            logger.info(f"Committed version {version} to {self.path}: {operation}")
            return version

    def insert(self, rows: list[dict[str, Any]]) -> int:
        """
        Append rows, generating identity values where none are supplied.

        Generated values advance the identity watermark in the same commit.

        Returns:
            The committed version
        """
        snapshot = self.snapshot()
        known = {c.name for c in snapshot.columns}
        for row in rows:
            unknown = set(row) - known
            if unknown:
                raise ValueError(f"Unknown column(s) in insert: {sorted(unknown)}")

        columns = list(snapshot.columns)
        filled = [dict(row) for row in rows]
        schema_changed = False

        for i, column in enumerate(columns):
            if not column.is_identity:
                continue
            info = column.identity_info()
            filled, updated = fill_identity_values(filled, column.name, info)
            if updated != info:
                columns[i] = column.with_metadata(updated.to_metadata())
                schema_changed = True

        version = snapshot.version + 1
        for index, row in enumerate(filled):
            row[ROW_ID_FIELD] = f"{version}:{index}"

        actions = [metadata_action(columns)] if schema_changed else []
        actions.append({"add": {"rows": filled}})
        return self.commit(snapshot.version, actions, operation="WRITE")

    def delete(self, predicate: Callable[[dict[str, Any]], bool]) -> int | None:
        """
        Remove every live row matching predicate.

        Returns:
            The committed version, or None when no row matched
        """
        snapshot = self.snapshot()
        row_ids = [row[ROW_ID_FIELD] for row in snapshot.rows if predicate(row)]
        if not row_ids:
            logger.info(f"Delete on {self.path} matched no rows")
            return None
        return self.commit(
            snapshot.version, [{"remove": {"rowIds": row_ids}}], operation="DELETE"
        )
