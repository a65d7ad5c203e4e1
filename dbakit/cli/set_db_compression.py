#!/usr/bin/env python3
"""CLI entry point for applying data compression.

Usage:
    dbakit set-db-compression --sql-instance sql01 --database Sales
    dbakit set-db-compression --sql-instance sql01 --compression-type Row --max-run-time 60
"""

from __future__ import annotations

import argparse
import sys

from dbakit.cli.common import (
    add_common_arguments,
    add_credential_arguments,
    confirm_callback,
    credential_from,
    run_command,
)
from dbakit.core.db_compression import set_db_compression


def main(argv: list[str] | None = None) -> int:
    """Apply compression from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit set-db-compression",
        description="Rebuild heaps and indexes with row, page or no compression",
    )
    parser.add_argument("--sql-instance", required=True, nargs="+", help="Instance(s) to change")
    parser.add_argument("--database", nargs="+", default=None, help="Only these databases")
    parser.add_argument("--exclude-database", nargs="+", default=None, help="Databases to leave out")
    parser.add_argument("--table", nargs="+", default=None, help="Only these tables (name or schema.name)")
    parser.add_argument(
        "--compression-type",
        default="Page",
        choices=["Row", "Page", "None"],
        help="Compression to apply (default: Page)",
    )
    parser.add_argument(
        "--max-run-time",
        type=int,
        default=0,
        help="Minutes after which no new rebuild starts (default: 0, unlimited)",
    )
    add_credential_arguments(parser, "sql-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: set_db_compression(
            args.sql_instance,
            credential=credential_from(args.sql_user, args.sql_password),
            database=args.database,
            exclude_database=args.exclude_database,
            table=args.table,
            compression_type=args.compression_type,
            max_run_time=args.max_run_time,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
