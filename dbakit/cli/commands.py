#!/usr/bin/env python3
"""dbakit CLI - Main Entry Point.

Usage:
    dbakit <command> [options]

Commands:
    copy-db-mail            Copy Database Mail configuration, accounts, servers and profiles
    copy-reg-server         Copy CMS server groups and registered servers
    copy-resource-governor  Copy Resource Governor classifier, pools and workload groups
    get-database            Show database metadata, sizes and last backup times
    set-login               Change login state, password, roles and default database
    set-db-compression      Rebuild heaps and indexes with row or page compression
    set-agent-schedule      Change a SQL Agent job schedule
    rename-helper           Replace deprecated names in PowerShell scripts
    help                    Show this help message
"""

from __future__ import annotations

import importlib
import sys

import click

from dbakit.helpers.helpers_logging import Colors

# Minimum number of CLI args (program name + command)
_MIN_ARGS = 2

# Command name -> entry point module and help text
COMMANDS: dict[str, dict[str, str]] = {
    "copy-db-mail": {
        "module": "dbakit.cli.copy_db_mail",
        "description": "Copy Database Mail configuration, accounts, servers and profiles",
    },
    "copy-reg-server": {
        "module": "dbakit.cli.copy_reg_server",
        "description": "Copy CMS server groups and registered servers",
    },
    "copy-resource-governor": {
        "module": "dbakit.cli.copy_resource_governor",
        "description": "Copy Resource Governor classifier, pools and workload groups",
    },
    "get-database": {
        "module": "dbakit.cli.get_database",
        "description": "Show database metadata, sizes and last backup times",
    },
    "set-login": {
        "module": "dbakit.cli.set_login",
        "description": "Change login state, password, roles and default database",
    },
    "set-db-compression": {
        "module": "dbakit.cli.set_db_compression",
        "description": "Rebuild heaps and indexes with row or page compression",
    },
    "set-agent-schedule": {
        "module": "dbakit.cli.set_agent_schedule",
        "description": "Change a SQL Agent job schedule",
    },
    "rename-helper": {
        "module": "dbakit.cli.rename_helper",
        "description": "Replace deprecated names in PowerShell scripts",
    },
}


def print_help() -> None:
    """Print the command overview."""
    print(f"{Colors.BOLD}dbakit{Colors.ENDC} - SQL Server administration commands\n")
    print("Usage: dbakit <command> [options]\n")
    print("Commands:")
    width = max(len(name) for name in COMMANDS)
    for name, info in COMMANDS.items():
        print(f"  {Colors.OKCYAN}{name.ljust(width)}{Colors.ENDC}  {info['description']}")
    print(f"  {Colors.OKCYAN}{'help'.ljust(width)}{Colors.ENDC}  Show this help message")
    print("\nConnections come from instances.yaml (or $DBAKIT_CONFIG) and MSSQL_* variables.")
    print("Run 'dbakit <command> --help' for command options.")


def execute_command(command: str, extra_args: list[str]) -> int:
    """Run a command's argparse entry point with the remaining arguments."""
    info = COMMANDS.get(command)
    if info is None:
        print(f"❌ Unknown command: {command}")
        print("\nRun 'dbakit help' to see available commands.")
        return 1

    module = importlib.import_module(info["module"])
    try:
        return int(module.main(extra_args))
    except SystemExit as exc:
        # argparse exits on --help and usage errors
        return exc.code if isinstance(exc.code, int) else 1


@click.group(invoke_without_command=True)
@click.pass_context
def _click_cli(ctx: click.Context) -> int:
    """Top-level dbakit command group."""
    if ctx.invoked_subcommand is not None:
        return 0
    print_help()
    return 0


def _register_passthrough_command(
    command_name: str,
    description: str,
) -> None:
    """Register a click command that hands all its arguments to argparse."""

    @click.command(
        name=command_name,
        help=description,
        context_settings={
            "allow_extra_args": True,
            "ignore_unknown_options": True,
        },
        add_help_option=False,
    )
    @click.pass_context
    def _cmd(ctx: click.Context) -> int:
        extra_args: list[str] = list(ctx.args)
        return execute_command(command_name, extra_args)

    _click_cli.add_command(_cmd)


def _register_commands() -> None:
    for cmd, info in COMMANDS.items():
        _register_passthrough_command(cmd, info["description"])

    @click.command(name="help", help="Show help message")
    def _help_cmd() -> int:
        print_help()
        return 0

    _click_cli.add_command(_help_cmd)


_register_commands()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = sys.argv[1:] if argv is None else argv

    if len(args) < _MIN_ARGS - 1 or args[0] in ["help", "--help", "-h"]:
        print_help()
        return 0

    try:
        result = _click_cli.main(
            args=args,
            prog_name="dbakit",
            standalone_mode=False,
        )
    except click.Abort:
        print("\n⚠️  Cancelled by user")
        return 130
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    return 0 if result is None else int(result)


if __name__ == "__main__":
    sys.exit(main())
