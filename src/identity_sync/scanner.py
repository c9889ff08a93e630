"""
Observed extreme scanners.

The sync command needs a single number from the live data: the maximum
identity value when the step is positive, the minimum when it is negative,
taken over every row (generated and explicitly inserted), or None when the
table is empty.

- SnapshotScanner reads a table log snapshot
- CursorScanner asks a SQL database through any DB-API cursor
"""

import logging
import re
from typing import Any, Iterable

from opentelemetry import trace

from utils.retry import retry_database_operation
from utils.tracing import trace_operation

from .table_log import Snapshot

logger = logging.getLogger(__name__)

# Strict ASCII-only pattern for SQL identifiers, optionally schema qualified
VALID_IDENTIFIER_PATTERN = re.compile(
    r'^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$'
)

SUPPORTED_DIALECTS = ("postgresql", "sqlserver")


def observed_extreme(values: Iterable[Any], step: int) -> int | None:
    """
    Select the extreme value relevant to a progression direction.

    Args:
        values: Column values (None entries are ignored)
        step: Identity step; its sign picks max (positive) or min (negative)

    Returns:
        max(values) for positive step, min(values) for negative step,
        None when there are no values
    """
    present = [int(v) for v in values if v is not None]
    if not present:
        return None
    return max(present) if step > 0 else min(present)


class SnapshotScanner:
    """Scans a table log snapshot."""

    def scan(self, snapshot: Snapshot, column: str, step: int) -> int | None:
        with trace_operation(
            "scan_observed_extreme",
            kind=trace.SpanKind.INTERNAL,
            column=column,
            version=snapshot.version,
        ):
            extreme = observed_extreme(snapshot.values(column), step)
            logger.debug(
                f"Observed extreme of {column} at version {snapshot.version}: "
                f"{extreme} over {snapshot.row_count} rows"
            )
            return extreme


def quote_identifier(identifier: str, dialect: str = "postgresql") -> str:
    """
    Quote a table or column identifier for the given SQL dialect.

    Args:
        identifier: Name, optionally schema qualified ('schema.table')
        dialect: 'postgresql' (double quotes) or 'sqlserver' (brackets)

    Returns:
        Quoted identifier

    Raises:
        ValueError: If the identifier or dialect is invalid
    """
    if dialect not in SUPPORTED_DIALECTS:
        raise ValueError(f"Unsupported dialect: {dialect}")

    clean_identifier = identifier.replace('[', '').replace(']', '')
    if not VALID_IDENTIFIER_PATTERN.match(clean_identifier):
        raise ValueError(f"Invalid identifier format: {identifier}")

    parts = clean_identifier.split('.')
    if dialect == "postgresql":
        return ".".join(f'"{part}"' for part in parts)
    return ".".join(f"[{part}]" for part in parts)


class CursorScanner:
    """Scans a SQL table through a DB-API cursor."""

    def __init__(self, cursor: Any, table: str, dialect: str = "postgresql"):
        """
        Initialize cursor scanner.

        Args:
            cursor: DB-API cursor (psycopg2, pyodbc, ...)
            table: Table name, optionally schema qualified
            dialect: SQL dialect used for identifier quoting
        """
        self.cursor = cursor
        self.table = table
        self.dialect = dialect
        # Fail fast on bad names
        quote_identifier(table, dialect)

    def build_query(self, column: str, step: int) -> str:
        aggregate = "MAX" if step > 0 else "MIN"
        quoted_table = quote_identifier(self.table, self.dialect)
        quoted_column = quote_identifier(column, self.dialect)
        return f"SELECT {aggregate}({quoted_column}) FROM {quoted_table}"

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def scan(self, snapshot: Snapshot | None, column: str, step: int) -> int | None:
        """
        Query the observed extreme.

        The snapshot is ignored: the query reads the live table. An empty
        table yields NULL from the aggregate, mapped to None.
        """
        query = self.build_query(column, step)
        with trace_operation(
            "scan_observed_extreme",
            kind=trace.SpanKind.CLIENT,
            table=self.table,
            column=column,
        ):
            self.cursor.execute(query)
            row = self.cursor.fetchone()

        extreme = None if row is None or row[0] is None else int(row[0])
        logger.debug(f"Observed extreme of {self.table}.{column}: {extreme}")
        return extreme
