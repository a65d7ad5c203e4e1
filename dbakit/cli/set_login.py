#!/usr/bin/env python3
"""CLI entry point for changing login properties.

Usage:
    dbakit set-login --sql-instance sql01 --login app_user --disable
    dbakit set-login --sql-instance sql01 --login app_user --password 'S3cret!' --unlock
    dbakit set-login --sql-instance sql01 --login ops --add-role dbcreator --default-database ops
"""

from __future__ import annotations

import argparse
import os
import sys

from dbakit.cli.common import (
    add_common_arguments,
    add_credential_arguments,
    confirm_callback,
    credential_from,
    run_command,
)
from dbakit.core.login import FIXED_SERVER_ROLES, set_login


def main(argv: list[str] | None = None) -> int:
    """Change login properties from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit set-login",
        description="Rename, enable/disable, unlock or change roles of SQL Server logins",
    )
    parser.add_argument("--sql-instance", required=True, nargs="+", help="Instance(s) to change")
    parser.add_argument("--login", required=True, nargs="+", help="Login(s) to change")
    parser.add_argument(
        "--password",
        default=os.environ.get("DBAKIT_LOGIN_PASSWORD"),
        help="New password for SQL logins (default: $DBAKIT_LOGIN_PASSWORD)",
    )
    parser.add_argument("--unlock", action="store_true", help="Unlock the login (needs --password)")
    parser.add_argument(
        "--must-change",
        action="store_true",
        help="Force a password change at next login (needs --password)",
    )
    parser.add_argument("--new-name", default=None, help="Rename the login")
    state = parser.add_mutually_exclusive_group()
    state.add_argument("--enable", action="store_true", help="Enable the login")
    state.add_argument("--disable", action="store_true", help="Disable the login")
    connect = parser.add_mutually_exclusive_group()
    connect.add_argument("--deny-login", action="store_true", help="DENY CONNECT SQL")
    connect.add_argument("--grant-login", action="store_true", help="GRANT CONNECT SQL")
    parser.add_argument(
        "--password-policy-enforced",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Turn CHECK_POLICY on or off",
    )
    parser.add_argument(
        "--password-expiration-enabled",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Turn CHECK_EXPIRATION on or off",
    )
    parser.add_argument(
        "--add-role",
        nargs="+",
        default=None,
        help=f"Fixed server roles to add ({', '.join(FIXED_SERVER_ROLES)})",
    )
    parser.add_argument("--remove-role", nargs="+", default=None, help="Fixed server roles to remove")
    parser.add_argument("--default-database", default=None, help="New default database")
    add_credential_arguments(parser, "sql-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: set_login(
            args.sql_instance,
            login=args.login,
            credential=credential_from(args.sql_user, args.sql_password),
            password=args.password,
            unlock=args.unlock,
            must_change=args.must_change,
            new_name=args.new_name,
            enable=args.enable,
            disable=args.disable,
            deny_login=args.deny_login,
            grant_login=args.grant_login,
            password_policy_enforced=args.password_policy_enforced,
            password_expiration_enabled=args.password_expiration_enabled,
            add_role=args.add_role,
            remove_role=args.remove_role,
            default_database=args.default_database,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
