"""
Command-line interface for identity column sync.

Available commands:
- sync: recompute the high watermark of an identity column
- describe: show identity settings of a table
"""

import sys

from utils.logging import setup_logging
from utils.metrics import initialize_metrics
from utils.tracing import shutdown_tracing

from .commands import cmd_describe, cmd_sync, describe_table, format_result_console
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the identity-sync CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, json_format=args.json_logs)

    if args.metrics_port:
        initialize_metrics(port=args.metrics_port)

    try:
        if args.command == 'sync':
            if args.max_retries is not None and args.max_retries < 0:
                parser.error("--max-retries cannot be negative")
            cmd_sync(args)
        elif args.command == 'describe':
            cmd_describe(args)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        shutdown_tracing()


__all__ = [
    'main',
    'cmd_sync',
    'cmd_describe',
    'create_parser',
    'describe_table',
    'format_result_console',
]


if __name__ == '__main__':
    main()
