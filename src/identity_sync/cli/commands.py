"""
CLI command implementations.

- sync: run SYNC IDENTITY on one column
- describe: print identity settings of a table's identity columns

Commands exit with status 0 on success and 1 on any failure.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from utils.metrics import get_sync_metrics
from utils.tracing import trace_function

from ..config import SyncConfig
from ..errors import IdentitySyncError, InvalidTarget
from ..sync import SyncIdentityCommand, SyncResult
from ..table_log import VersionedTable

logger = logging.getLogger(__name__)


def format_result_console(result: SyncResult) -> str:
    """Render a sync result for the terminal."""
    status = "UPDATED" if result.changed else "UNCHANGED"
    lines = [
        "=" * 60,
        f"SYNC IDENTITY: {result.table} ({result.column})",
        "=" * 60,
        f"Status:               {status}",
        f"Observed extreme:     {result.observed_extreme}",
        f"Previous watermark:   {result.previous.to_optional()}",
        f"New watermark:        {result.new.to_optional()}",
        f"Committed version:    {result.version if result.version is not None else '-'}",
        f"Attempts:             {result.attempts}",
    ]
    return "\n".join(lines)


def _write_output(text: str, output: str | None) -> None:
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n")
        logger.info(f"Result saved to {output_path}")
    else:
        print(text)


@trace_function(component="cli")
def cmd_sync(args: argparse.Namespace) -> None:
    """
    Run SYNC IDENTITY for one column

    Args:
        args: Parsed command-line arguments
    """
    try:
        config = SyncConfig.from_env().with_overrides(
            allow_lowering=args.allow_lowering,
            max_commit_retries=args.max_retries,
        )
        command = SyncIdentityCommand(
            args.table,
            args.column,
            config=config,
            metrics=get_sync_metrics(),
        )
        result = command.run()
    except InvalidTarget as e:
        logger.error(f"Invalid sync target: {e}")
        sys.exit(1)
    except IdentitySyncError as e:
        logger.error(f"SYNC IDENTITY failed: {type(e).__name__}: {e}")
        sys.exit(1)

    if args.format == "json":
        text = json.dumps(result.to_dict(), indent=2)
    else:
        text = format_result_console(result)
    _write_output(text, args.output)
    sys.exit(0)


def describe_table(table_path: str, column: str | None = None) -> list[dict[str, Any]]:
    """
    Collect identity settings of a table.

    Raises:
        InvalidTarget: If the table is not a versioned table, or the named
            column is missing or not an identity column
    """
    snapshot = VersionedTable.open(table_path).snapshot()
    columns = [snapshot.column(column)] if column else list(snapshot.columns)

    described = []
    for col in columns:
        if not col.is_identity:
            if column:
                raise InvalidTarget(f"Column {column} is not an IDENTITY column")
            continue
        info = col.identity_info()
        described.append({
            "column": col.name,
            "start": info.policy.start,
            "step": info.policy.step,
            "allow_explicit_insert": info.allow_explicit_insert,
            "high_watermark": info.watermark.to_optional(),
            "version": snapshot.version,
        })
    return described


@trace_function(component="cli")
def cmd_describe(args: argparse.Namespace) -> None:
    """
    Print identity settings

    Args:
        args: Parsed command-line arguments
    """
    try:
        described = describe_table(args.table, args.column)
    except IdentitySyncError as e:
        logger.error(f"Cannot describe {args.table}: {e}")
        sys.exit(1)

    if args.format == "json":
        print(json.dumps(described, indent=2))
    elif not described:
        print(f"{args.table} has no identity columns")
    else:
        for entry in described:
            print(
                f"{entry['column']}: start={entry['start']} step={entry['step']} "
                f"allowExplicitInsert={entry['allow_explicit_insert']} "
                f"highWaterMark={entry['high_watermark']}"
            )
    sys.exit(0)
