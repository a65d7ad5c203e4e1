"""Argument groups and result handling shared by the command entry points."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence

import click

from dbakit.helpers.errors import DbaCommandError, ErrorCategory
from dbakit.helpers.helpers_logging import print_error, set_verbose
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.output import OUTPUT_FORMATS, record_to_dict, render_records
from dbakit.helpers.should_process import ConfirmCallback


def add_common_arguments(parser: argparse.ArgumentParser, *, mutating: bool = True) -> None:
    """Add --format, --verbose and --enable-exception (plus --dry-run/--confirm)."""
    if mutating:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would change without changing anything",
        )
        parser.add_argument(
            "--confirm",
            action="store_true",
            help="Ask before every change",
        )
    parser.add_argument(
        "--enable-exception",
        action="store_true",
        help="Stop at the first failure instead of reporting and continuing",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print the T-SQL sent to each instance",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="table",
        help="Result output format (default: table)",
    )


def add_credential_arguments(parser: argparse.ArgumentParser, prefix: str = "") -> None:
    """Add --<prefix>user / --<prefix>password SQL login options."""
    label = prefix.rstrip("-") if prefix not in ("", "sql-") else "instance"
    parser.add_argument(
        f"--{prefix}user",
        default=None,
        help=f"SQL login for the {label} (default: instances.yaml or MSSQL_* env)",
    )
    parser.add_argument(
        f"--{prefix}password",
        default=None,
        help=f"Password for --{prefix}user",
    )


def credential_from(user: str | None, password: str | None) -> SqlCredential | None:
    if user is None:
        return None
    return SqlCredential(user, password or "")


def click_confirm(target: str, action: str) -> bool:
    """Prompt on the terminal; Ctrl+C aborts the whole command."""
    return click.confirm(f'Perform "{action}" on "{target}"?', default=False)


def confirm_callback(args: argparse.Namespace) -> ConfirmCallback | None:
    return click_confirm if getattr(args, "confirm", False) else None


def has_failures(records: Sequence[object]) -> bool:
    return any(record_to_dict(r).get("Status") == "Failed" for r in records)


def run_command(
    args: argparse.Namespace,
    command: Callable[[], Sequence[object]],
) -> int:
    """Run a command, print its records and map the outcome to an exit code.

    Returns:
        0 when no record failed, 1 on a failed record or terminating error.
    """
    set_verbose(args.verbose)
    try:
        records = command()
    except DbaCommandError as e:
        print_error(f"[{e.category.value}] {e}")
        return 1
    except click.Abort:
        raise
    except Exception as e:
        print_error(f"[{ErrorCategory.INVALID_OPERATION.value}] {e}")
        return 1

    if records:
        print(render_records(records, args.format))
    return 1 if has_failures(records) else 0
