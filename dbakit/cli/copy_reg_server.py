#!/usr/bin/env python3
"""CLI entry point for copying Central Management Server registrations.

Usage:
    dbakit copy-reg-server --source cms01 --destination cms02
    dbakit copy-reg-server --source cms01 --destination cms02 --group Production --switch-server-name
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
from dbakit.core.copy_reg_server import copy_reg_server


def main(argv: list[str] | None = None) -> int:
    """Run the CMS copy from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit copy-reg-server",
        description="Copy CMS server groups and registered servers",
    )
    parser.add_argument("--source", required=True, help="Source CMS instance")
    parser.add_argument("--destination", required=True, nargs="+", help="Destination CMS instance(s)")
    parser.add_argument("--group", nargs="+", default=None, help="Only copy these top-level groups")
    parser.add_argument(
        "--switch-server-name",
        action="store_true",
        help="Register the source instance in place of the destination's own entry",
    )
    parser.add_argument("--force", action="store_true", help="Drop and recreate existing groups and servers")
    add_credential_arguments(parser, "source-")
    add_credential_arguments(parser, "destination-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: copy_reg_server(
            args.source,
            args.destination,
            source_credential=credential_from(args.source_user, args.source_password),
            destination_credential=credential_from(
                args.destination_user, args.destination_password,
            ),
            group=args.group,
            switch_server_name=args.switch_server_name,
            force=args.force,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
