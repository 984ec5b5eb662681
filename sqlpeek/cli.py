"""
sqlpeek: run one SQL query against a named preset and print a bounded table.

Usage:
    sqlpeek warehouse "SELECT * FROM orders"
    sqlpeek --config presets.yaml local "SELECT 42 AS answer"
    python -m sqlpeek warehouse "SHOW TABLES"

The report (table, row count, memory estimate, column legend) goes to
stdout. Diagnostics go to stderr and the exit status names the failed stage.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, NoReturn, Optional

from .engine import execute_query
from .errors import SqlPeekError, UsageError
from .profiles import CONFIG_ENV_VAR, load_profile
from .render import render
from .result import materialize

logger = logging.getLogger(__name__)

PROG = "sqlpeek"


class ArgumentParser(argparse.ArgumentParser):
    """argparse that raises UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog=PROG,
        description="Execute an arbitrary SQL query against a named database preset.",
    )
    parser.add_argument("preset", help="Name of the preset in the presets file")
    parser.add_argument("query", help="SQL query to execute")
    parser.add_argument(
        "--config",
        help=f"Path to the presets file (default: ${CONFIG_ENV_VAR} or ~/.config/sqlpeek/presets.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug details to stderr"
    )
    return parser


def run_query(preset_name: str, query: str, config_path: Optional[str] = None) -> str:
    """
    Resolve the preset, execute the query and render the report.

    Nothing is rendered unless every stage succeeds.
    """
    profile = load_profile(preset_name, config_path)
    response = execute_query(profile, query)
    buffer = materialize(response.columns, response.rows)
    return render(buffer)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{PROG}: {e.stage} error: {e}", file=sys.stderr)
        return e.exit_code

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        report = run_query(args.preset, args.query, args.config)
    except SqlPeekError as e:
        print(f"{PROG}: {e.stage} error: {e}", file=sys.stderr)
        return e.exit_code

    sys.stdout.write(report)
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
