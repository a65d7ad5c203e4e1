#!/usr/bin/env python3
"""CLI entry point for listing databases.

Usage:
    dbakit get-database --sql-instance sql01
    dbakit get-database --sql-instance sql01 sql02 --exclude-system --recovery-model Full --format json
"""

from __future__ import annotations

import argparse
import sys

from dbakit.cli.common import add_common_arguments, add_credential_arguments, credential_from, run_command
from dbakit.core.database_info import get_database


def main(argv: list[str] | None = None) -> int:
    """List databases from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit get-database",
        description="Show database metadata, sizes and last backup times",
    )
    parser.add_argument("--sql-instance", required=True, nargs="+", help="Instance(s) to query")
    parser.add_argument("--database", nargs="+", default=None, help="Only these databases")
    parser.add_argument("--exclude-database", nargs="+", default=None, help="Databases to leave out")
    parser.add_argument("--exclude-user", action="store_true", help="Only system databases")
    parser.add_argument("--exclude-system", action="store_true", help="Only user databases")
    parser.add_argument(
        "--status",
        nargs="+",
        default=None,
        help="EmergencyMode, Normal, Offline, Recovering, RecoveryPending, Restoring, Standby, Suspect",
    )
    parser.add_argument("--access", default=None, help="ReadOnly or ReadWrite")
    parser.add_argument("--owner", nargs="+", default=None, help="Only databases owned by these logins")
    parser.add_argument("--encrypted", action="store_true", help="Only TDE-encrypted databases")
    parser.add_argument("--recovery-model", nargs="+", default=None, help="Full, Simple or BulkLogged")
    add_credential_arguments(parser, "sql-")
    add_common_arguments(parser, mutating=False)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: get_database(
            args.sql_instance,
            credential=credential_from(args.sql_user, args.sql_password),
            database=args.database,
            exclude_database=args.exclude_database,
            exclude_user=args.exclude_user,
            exclude_system=args.exclude_system,
            status=args.status,
            access=args.access,
            owner=args.owner,
            encrypted=args.encrypted,
            recovery_model=args.recovery_model,
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
