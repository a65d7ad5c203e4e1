#!/usr/bin/env python3
"""CLI entry point for updating SQL Agent job schedules.

Usage:
    dbakit set-agent-schedule --sql-instance sql01 --job Nightly --schedule nightly --disabled
    dbakit set-agent-schedule --sql-instance sql01 --job Backup --schedule daily \\
        --frequency-type Weekly --frequency-interval Monday Friday --start-time 230000
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
from dbakit.core.agent_schedule import set_agent_schedule


def main(argv: list[str] | None = None) -> int:
    """Update a job schedule from CLI arguments.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="dbakit set-agent-schedule",
        description="Change the frequency, dates or state of a SQL Agent job schedule",
    )
    parser.add_argument("--sql-instance", required=True, nargs="+", help="Instance(s) to change")
    parser.add_argument("--job", required=True, nargs="+", help="Job(s) the schedule is attached to")
    parser.add_argument("--schedule", required=True, dest="schedule_name", help="Schedule name")
    parser.add_argument("--new-name", default=None, help="Rename the schedule")
    state = parser.add_mutually_exclusive_group()
    state.add_argument("--enabled", action="store_true", help="Enable the schedule")
    state.add_argument("--disabled", action="store_true", help="Disable the schedule")
    parser.add_argument(
        "--frequency-type",
        default=None,
        help="Once, Daily, Weekly, Monthly, MonthlyRelative, AgentStart or IdleComputer",
    )
    parser.add_argument(
        "--frequency-interval",
        nargs="+",
        default=None,
        help="Weekly: day names (Weekdays, Weekend, EveryDay); Daily/Monthly: a number",
    )
    parser.add_argument("--frequency-subday-type", default=None, help="Time, Seconds, Minutes or Hours")
    parser.add_argument("--frequency-subday-interval", type=int, default=None, help="Subday repeat interval")
    parser.add_argument(
        "--frequency-relative-interval",
        default=None,
        help="Unused, First, Second, Third, Fourth or Last",
    )
    parser.add_argument("--frequency-recurrence-factor", type=int, default=None, help="Weeks/months between runs")
    parser.add_argument("--start-date", default=None, help="yyyyMMdd")
    parser.add_argument("--end-date", default=None, help="yyyyMMdd")
    parser.add_argument("--start-time", default=None, help="HHmmss")
    parser.add_argument("--end-time", default=None, help="HHmmss")
    add_credential_arguments(parser, "sql-")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    return run_command(
        args,
        lambda: set_agent_schedule(
            args.sql_instance,
            job=args.job,
            schedule_name=args.schedule_name,
            credential=credential_from(args.sql_user, args.sql_password),
            new_name=args.new_name,
            enabled=args.enabled,
            disabled=args.disabled,
            frequency_type=args.frequency_type,
            frequency_interval=args.frequency_interval,
            frequency_subday_type=args.frequency_subday_type,
            frequency_subday_interval=args.frequency_subday_interval,
            frequency_relative_interval=args.frequency_relative_interval,
            frequency_recurrence_factor=args.frequency_recurrence_factor,
            start_date=args.start_date,
            end_date=args.end_date,
            start_time=args.start_time,
            end_time=args.end_time,
            dry_run=args.dry_run,
            confirm=confirm_callback(args),
            enable_exception=args.enable_exception,
        ),
    )


if __name__ == "__main__":
    sys.exit(main())
