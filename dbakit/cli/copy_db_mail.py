#!/usr/bin/env python3
"""CLI entry point for copying Database Mail between instances.

Usage:
    dbakit copy-db-mail --source sql01 --destination sql02
    dbakit copy-db-mail --source sql01 --destination sql02 sql03 --type Accounts Profiles --force
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
from dbakit.core.copy_db_mail import MAIL_TYPES, copy_db_mail


def main(argv: list[str] | None = None) -> int:
    """Run the Database Mail copy from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit copy-db-mail",
        description="Copy Database Mail configuration, accounts, servers and profiles",
    )
    parser.add_argument("--source", required=True, help="Source instance")
    parser.add_argument("--destination", required=True, nargs="+", help="Destination instance(s)")
    parser.add_argument(
        "--type",
        dest="types",
        nargs="+",
        default=None,
        help=f"Object types to copy: {', '.join(MAIL_TYPES)} (default: all)",
    )
    parser.add_argument("--force", action="store_true", help="Drop and recreate existing objects")
    add_credential_arguments(parser, "source-")
    add_credential_arguments(parser, "destination-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: copy_db_mail(
            args.source,
            args.destination,
            source_credential=credential_from(args.source_user, args.source_password),
            destination_credential=credential_from(
                args.destination_user, args.destination_password,
            ),
            types=args.types,
            force=args.force,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
