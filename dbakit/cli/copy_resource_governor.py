#!/usr/bin/env python3
"""CLI entry point for copying Resource Governor configuration.

Usage:
    dbakit copy-resource-governor --source sql01 --destination sql02
    dbakit copy-resource-governor --source sql01 --destination sql02 --resource-pool reporting --force
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
from dbakit.core.copy_resource_governor import copy_resource_governor


def main(argv: list[str] | None = None) -> int:
    """Run the Resource Governor copy from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit copy-resource-governor",
        description="Copy Resource Governor classifier, pools and workload groups",
    )
    parser.add_argument("--source", required=True, help="Source instance")
    parser.add_argument("--destination", required=True, nargs="+", help="Destination instance(s)")
    parser.add_argument("--resource-pool", nargs="+", default=None, help="Only copy these pools")
    parser.add_argument("--exclude-resource-pool", nargs="+", default=None, help="Pools to skip")
    parser.add_argument("--force", action="store_true", help="Drop and recreate existing objects")
    add_credential_arguments(parser, "source-")
    add_credential_arguments(parser, "destination-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: copy_resource_governor(
            args.source,
            args.destination,
            source_credential=credential_from(args.source_user, args.source_password),
            destination_credential=credential_from(
                args.destination_user, args.destination_password,
            ),
            resource_pool=args.resource_pool,
            exclude_resource_pool=args.exclude_resource_pool,
            force=args.force,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
