#!/usr/bin/env python3
"""CLI entry point for rewriting deprecated names in PowerShell scripts.

Usage:
    dbakit rename-helper scripts/
    dbakit rename-helper deploy.ps1 --encoding Unicode --dry-run
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dbakit.cli.common import add_common_arguments, confirm_callback, run_command
from dbakit.core.rename_helper import invoke_rename_helper


def main(argv: list[str] | None = None) -> int:
    """Rewrite scripts from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit rename-helper",
        description="Replace deprecated command and parameter names in .ps1/.psm1/.psd1 files",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Script files or directories")
    parser.add_argument(
        "--encoding",
        default="UTF8",
        help="File encoding: Python codec or ASCII, BigEndianUnicode, Unicode, UTF7, UTF8, UTF32",
    )
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: invoke_rename_helper(
            args.paths,
            encoding=args.encoding,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
