"""
Command-line argument parser configuration.

Defines the identity-sync commands and their options.
"""

import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="identity-sync",
        description="Repair the high watermark of identity columns in versioned tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Recompute the watermark of column id from the live data
  identity-sync sync --table /data/events --column id

  # Allow the watermark to move backward after rows were deleted
  identity-sync sync --table /data/events --column id --allow-lowering

  # Write the result as JSON
  identity-sync sync --table /data/events --column id --format json --output sync.json

  # Show identity settings of every identity column
  identity-sync describe --table /data/events
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit logs as JSON'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Sync command ==========
    sync_parser = subparsers.add_parser('sync', help='Recompute an identity high watermark')
    sync_parser.add_argument(
        '--table',
        required=True,
        help='Path of the versioned table'
    )
    sync_parser.add_argument(
        '--column',
        required=True,
        help='Identity column to sync'
    )
    sync_parser.add_argument(
        '--allow-lowering',
        action='store_true',
        default=None,
        help='Allow lowering a valid watermark (default: IDENTITY_SYNC_ALLOW_LOWERING or false)'
    )
    sync_parser.add_argument(
        '--max-retries',
        type=int,
        help='Retries after a concurrent commit (default: IDENTITY_SYNC_MAX_COMMIT_RETRIES or 3)'
    )
    sync_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    sync_parser.add_argument(
        '--output',
        help='Output file path for the result'
    )

    # ========== Describe command ==========
    describe_parser = subparsers.add_parser('describe', help='Show identity column settings')
    describe_parser.add_argument(
        '--table',
        required=True,
        help='Path of the versioned table'
    )
    describe_parser.add_argument(
        '--column',
        help='Only show this column'
    )
    describe_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )

    return parser
