"""Update SQL Agent job schedules.

Frequency values are the bit-flag encodings msdb stores in ``sysschedules``:

    freq_type       Once=1 Daily=4 Weekly=8 Monthly=16 MonthlyRelative=32
                    AgentStart=64 IdleComputer=128
    freq_interval   Weekly: OR of day flags (Sunday=1 ... Saturday=64)
                    Daily: every N days; Monthly: day of month
                    MonthlyRelative: Sunday..Saturday=1..7, Day=8,
                    Weekday=9, WeekendDay=10

Usage:
    >>> encode_frequency_interval(FrequencyType.WEEKLY, ["Monday", "Friday"])
    34
    >>> set_agent_schedule(["sql01"], job=["Nightly"], schedule_name="nightly",
    ...                    frequency_type="Weekly",
    ...                    frequency_interval=["Weekdays"])
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, IntFlag
from functools import reduce
from operator import or_
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_success, print_verbose
from dbakit.helpers.instance import SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess

# ---------------------------------------------------------------------------
# Encodings
# ---------------------------------------------------------------------------


class FrequencyType(IntEnum):
    """``freq_type`` values."""

    ONCE = 1
    DAILY = 4
    WEEKLY = 8
    MONTHLY = 16
    MONTHLY_RELATIVE = 32
    AGENT_START = 64
    IDLE_COMPUTER = 128


class WeekDay(IntFlag):
    """Weekly ``freq_interval`` day flags."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 4
    WEDNESDAY = 8
    THURSDAY = 16
    FRIDAY = 32
    SATURDAY = 64
    WEEKDAYS = MONDAY | TUESDAY | WEDNESDAY | THURSDAY | FRIDAY
    WEEKEND = SUNDAY | SATURDAY
    EVERYDAY = WEEKDAYS | WEEKEND


class SubdayType(IntEnum):
    """``freq_subday_type`` values."""

    TIME = 1
    SECONDS = 2
    MINUTES = 4
    HOURS = 8


class RelativeInterval(IntEnum):
    """``freq_relative_interval`` values for MonthlyRelative schedules."""

    UNUSED = 0
    FIRST = 1
    SECOND = 2
    THIRD = 4
    FOURTH = 8
    LAST = 16


FREQUENCY_TYPE_NAMES: dict[str, FrequencyType] = {
    "once": FrequencyType.ONCE,
    "onetime": FrequencyType.ONCE,
    "daily": FrequencyType.DAILY,
    "weekly": FrequencyType.WEEKLY,
    "monthly": FrequencyType.MONTHLY,
    "monthlyrelative": FrequencyType.MONTHLY_RELATIVE,
    "agentstart": FrequencyType.AGENT_START,
    "autostart": FrequencyType.AGENT_START,
    "idlecomputer": FrequencyType.IDLE_COMPUTER,
    "onidle": FrequencyType.IDLE_COMPUTER,
}

WEEKDAY_NAMES: dict[str, WeekDay] = {
    "sunday": WeekDay.SUNDAY,
    "monday": WeekDay.MONDAY,
    "tuesday": WeekDay.TUESDAY,
    "wednesday": WeekDay.WEDNESDAY,
    "thursday": WeekDay.THURSDAY,
    "friday": WeekDay.FRIDAY,
    "saturday": WeekDay.SATURDAY,
    "weekdays": WeekDay.WEEKDAYS,
    "weekend": WeekDay.WEEKEND,
    "everyday": WeekDay.EVERYDAY,
}

MONTHLY_RELATIVE_NAMES: dict[str, int] = {
    "sunday": 1,
    "monday": 2,
    "tuesday": 3,
    "wednesday": 4,
    "thursday": 5,
    "friday": 6,
    "saturday": 7,
    "day": 8,
    "weekday": 9,
    "weekendday": 10,
}

SUBDAY_TYPE_NAMES: dict[str, SubdayType] = {
    "time": SubdayType.TIME,
    "once": SubdayType.TIME,
    "seconds": SubdayType.SECONDS,
    "second": SubdayType.SECONDS,
    "minutes": SubdayType.MINUTES,
    "minute": SubdayType.MINUTES,
    "hours": SubdayType.HOURS,
    "hour": SubdayType.HOURS,
}

RELATIVE_INTERVAL_NAMES: dict[str, RelativeInterval] = {
    "unused": RelativeInterval.UNUSED,
    "first": RelativeInterval.FIRST,
    "second": RelativeInterval.SECOND,
    "third": RelativeInterval.THIRD,
    "fourth": RelativeInterval.FOURTH,
    "last": RelativeInterval.LAST,
}

# Inclusive subday interval ranges
SUBDAY_INTERVAL_RANGES: dict[SubdayType, tuple[int, int]] = {
    SubdayType.SECONDS: (1, 86399),
    SubdayType.MINUTES: (1, 1439),
    SubdayType.HOURS: (1, 23),
}


class ScheduleValidationError(ValueError):
    """Raised for invalid schedule arguments, before any server contact."""


def _lookup(table: dict[str, Any], value: str | int, kind: str) -> Any:
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    key = text.replace(" ", "").replace("_", "").lower()
    if key not in table:
        raise ScheduleValidationError(f"Invalid {kind}: {value}")
    return table[key]


def parse_frequency_type(value: str | int) -> FrequencyType:
    """Parse a frequency type name (Weekly, OneTime ...) or number."""
    raw = _lookup(FREQUENCY_TYPE_NAMES, value, "frequency type")
    try:
        return FrequencyType(raw)
    except ValueError as e:
        raise ScheduleValidationError(f"Invalid frequency type: {value}") from e


def parse_subday_type(value: str | int) -> SubdayType:
    """Parse a subday type name (Minutes, Hours ...) or number."""
    raw = _lookup(SUBDAY_TYPE_NAMES, value, "frequency subday type")
    try:
        return SubdayType(raw)
    except ValueError as e:
        raise ScheduleValidationError(f"Invalid frequency subday type: {value}") from e


def parse_relative_interval(value: str | int) -> RelativeInterval:
    """Parse a relative interval name (First, Last ...) or number."""
    raw = _lookup(RELATIVE_INTERVAL_NAMES, value, "frequency relative interval")
    try:
        return RelativeInterval(raw)
    except ValueError as e:
        raise ScheduleValidationError(
            f"Invalid frequency relative interval: {value}",
        ) from e


def encode_weekly_interval(days: Sequence[str | int]) -> int:
    """Fold day names or flag values into the weekly interval bit-field."""
    if not days:
        raise ScheduleValidationError("Weekly schedules need at least one day")
    flags: list[int] = []
    for day in days:
        flag = int(_lookup(WEEKDAY_NAMES, day, "weekly frequency interval"))
        if flag < 1 or flag > int(WeekDay.EVERYDAY):
            raise ScheduleValidationError(f"Invalid weekly frequency interval: {day}")
        flags.append(flag)
    return reduce(or_, flags, 0)


def encode_frequency_interval(
    frequency_type: FrequencyType,
    values: Sequence[str | int] | None,
) -> int:
    """Compute ``freq_interval`` for a frequency type.

    Raises:
        ScheduleValidationError: If the values don't fit the type.
    """
    items = list(values or [])

    if frequency_type in (
        FrequencyType.ONCE,
        FrequencyType.AGENT_START,
        FrequencyType.IDLE_COMPUTER,
    ):
        return 0

    if frequency_type is FrequencyType.WEEKLY:
        return encode_weekly_interval(items)

    if len(items) > 1:
        raise ScheduleValidationError(
            f"{frequency_type.name.title()} schedules take a single interval value",
        )
    value = items[0] if items else None

    if frequency_type is FrequencyType.DAILY:
        if value is None:
            return 1
        if isinstance(value, str) and value.strip().lower() == "everyday":
            return 1
        days = _as_int(value, "daily frequency interval")
        if days < 1:
            raise ScheduleValidationError("Daily frequency interval must be at least 1")
        return days

    if frequency_type is FrequencyType.MONTHLY:
        if value is None:
            raise ScheduleValidationError("Monthly schedules need a day of month")
        day = _as_int(value, "monthly frequency interval")
        if not 1 <= day <= 31:
            raise ScheduleValidationError("Monthly frequency interval must be 1-31")
        return day

    if value is None:
        raise ScheduleValidationError("MonthlyRelative schedules need an interval")
    relative = int(_lookup(MONTHLY_RELATIVE_NAMES, value, "monthly relative interval"))
    if not 1 <= relative <= 10:
        raise ScheduleValidationError(f"Invalid monthly relative interval: {value}")
    return relative


def _as_int(value: str | int, kind: str) -> int:
    if isinstance(value, int):
        return value
    if not value.strip().isdigit():
        raise ScheduleValidationError(f"Invalid {kind}: {value}")
    return int(value)


def parse_schedule_date(value: str) -> int:
    """Validate a ``yyyyMMdd`` date and return it as msdb stores it."""
    try:
        datetime.strptime(value, "%Y%m%d")
    except ValueError as e:
        raise ScheduleValidationError(f"Invalid date {value!r}, expected yyyyMMdd") from e
    if len(value) != 8:
        raise ScheduleValidationError(f"Invalid date {value!r}, expected yyyyMMdd")
    return int(value)


def parse_schedule_time(value: str) -> int:
    """Validate an ``HHmmss`` time and return it as msdb stores it."""
    if len(value) != 6 or not value.isdigit():
        raise ScheduleValidationError(f"Invalid time {value!r}, expected HHmmss")
    hours, minutes, seconds = int(value[:2]), int(value[2:4]), int(value[4:])
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ScheduleValidationError(f"Invalid time {value!r}, expected HHmmss")
    return int(value)


# ---------------------------------------------------------------------------
# Change set
# ---------------------------------------------------------------------------


@dataclass
class ScheduleChanges:
    """Validated ``sp_update_schedule`` arguments. None means unchanged."""

    new_name: str | None = None
    enabled: bool | None = None
    freq_type: int | None = None
    freq_interval: int | None = None
    freq_subday_type: int | None = None
    freq_subday_interval: int | None = None
    freq_relative_interval: int | None = None
    freq_recurrence_factor: int | None = None
    active_start_date: int | None = None
    active_end_date: int | None = None
    active_start_time: int | None = None
    active_end_time: int | None = None

    def as_parameters(self) -> dict[str, object]:
        """Procedure parameters for the values that change."""
        params: dict[str, object] = {}
        for name, value in vars(self).items():
            if value is None:
                continue
            params[name] = int(value) if isinstance(value, bool) else value
        return params

    def is_empty(self) -> bool:
        return not self.as_parameters()


def build_schedule_changes(
    *,
    new_name: str | None = None,
    enabled: bool = False,
    disabled: bool = False,
    frequency_type: str | int | None = None,
    frequency_interval: Sequence[str | int] | None = None,
    frequency_subday_type: str | int | None = None,
    frequency_subday_interval: int | None = None,
    frequency_relative_interval: str | int | None = None,
    frequency_recurrence_factor: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
) -> ScheduleChanges:
    """Validate arguments and encode them for ``sp_update_schedule``.

    Raises:
        ScheduleValidationError: On conflicting or malformed arguments.
    """
    if enabled and disabled:
        raise ScheduleValidationError("Enabled and Disabled cannot be used together")

    changes = ScheduleChanges(new_name=new_name or None)
    if enabled:
        changes.enabled = True
    elif disabled:
        changes.enabled = False

    freq_type: FrequencyType | None = None
    if frequency_type is not None:
        freq_type = parse_frequency_type(frequency_type)
        changes.freq_type = int(freq_type)
        changes.freq_interval = encode_frequency_interval(freq_type, frequency_interval)
    elif frequency_interval:
        raise ScheduleValidationError("A frequency interval needs a frequency type")

    if frequency_subday_type is not None:
        subday = parse_subday_type(frequency_subday_type)
        changes.freq_subday_type = int(subday)
        if subday is SubdayType.TIME:
            changes.freq_subday_interval = 0
        elif frequency_subday_interval is None:
            raise ScheduleValidationError(
                f"A subday interval is required for subday type {subday.name.title()}",
            )
        else:
            low, high = SUBDAY_INTERVAL_RANGES[subday]
            if not low <= frequency_subday_interval <= high:
                raise ScheduleValidationError(
                    f"Subday interval for {subday.name.title()} must be {low}-{high}",
                )
            changes.freq_subday_interval = frequency_subday_interval
    elif frequency_subday_interval is not None:
        raise ScheduleValidationError("A subday interval needs a subday type")

    if frequency_relative_interval is not None:
        relative = parse_relative_interval(frequency_relative_interval)
        if relative is not RelativeInterval.UNUSED and freq_type is not FrequencyType.MONTHLY_RELATIVE:
            raise ScheduleValidationError(
                "A relative interval is only valid with MonthlyRelative schedules",
            )
        changes.freq_relative_interval = int(relative)
    elif freq_type is FrequencyType.MONTHLY_RELATIVE:
        raise ScheduleValidationError("MonthlyRelative schedules need a relative interval")

    if frequency_recurrence_factor is not None:
        if frequency_recurrence_factor < 0:
            raise ScheduleValidationError("Recurrence factor cannot be negative")
        changes.freq_recurrence_factor = frequency_recurrence_factor
    elif freq_type in (
        FrequencyType.WEEKLY,
        FrequencyType.MONTHLY,
        FrequencyType.MONTHLY_RELATIVE,
    ):
        changes.freq_recurrence_factor = 1

    if start_date is not None:
        changes.active_start_date = parse_schedule_date(start_date)
    if end_date is not None:
        changes.active_end_date = parse_schedule_date(end_date)
    if (
        changes.active_start_date is not None
        and changes.active_end_date is not None
        and changes.active_end_date < changes.active_start_date
    ):
        raise ScheduleValidationError("End date cannot be before the start date")

    if start_time is not None:
        changes.active_start_time = parse_schedule_time(start_time)
    if end_time is not None:
        changes.active_end_time = parse_schedule_time(end_time)

    return changes


# ---------------------------------------------------------------------------
# Server access
# ---------------------------------------------------------------------------

_JOB_EXISTS_SQL = "SELECT job_id FROM msdb.dbo.sysjobs WHERE name = %s"

_JOB_SCHEDULES_SQL = """
SELECT s.schedule_id, s.name, s.enabled, s.freq_type, s.freq_interval,
       s.freq_subday_type, s.freq_subday_interval, s.freq_relative_interval,
       s.freq_recurrence_factor, s.active_start_date, s.active_end_date,
       s.active_start_time, s.active_end_time
FROM msdb.dbo.sysjobs AS j
JOIN msdb.dbo.sysjobschedules AS js ON js.job_id = j.job_id
JOIN msdb.dbo.sysschedules AS s ON s.schedule_id = js.schedule_id
WHERE j.name = %s AND s.name = %s
ORDER BY s.schedule_id
"""


def job_exists(server: SqlInstance, job: str) -> bool:
    return server.query_one(_JOB_EXISTS_SQL, (job,)) is not None


def get_job_schedules(server: SqlInstance, job: str, schedule_name: str) -> list[dict[str, Any]]:
    """Schedules named ``schedule_name`` attached to ``job``."""
    return server.query(_JOB_SCHEDULES_SQL, (job, schedule_name))


def update_schedule(server: SqlInstance, schedule_id: int, changes: ScheduleChanges) -> None:
    """Run ``sp_update_schedule`` with only the changed arguments."""
    params = changes.as_parameters()
    assignments = ", ".join(f"@{name} = %s" for name in params)
    sql = f"EXEC msdb.dbo.sp_update_schedule @schedule_id = %s, {assignments}"
    server.execute(sql, (schedule_id, *params.values()))


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@dataclass
class ScheduleResult:
    """Outcome of updating one job schedule."""

    sql_instance: str
    job: str
    schedule_name: str
    schedule_id: int | None = None
    status: str = "Successful"
    notes: str | None = None
    changes: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "SqlInstance": self.sql_instance,
            "Job": self.job,
            "ScheduleName": self.schedule_name,
            "ScheduleId": self.schedule_id,
            "Status": self.status,
            "Notes": self.notes,
            "Changes": ", ".join(f"{k}={v}" for k, v in self.changes.items()),
        }


def set_agent_schedule(
    sql_instance: Sequence[str],
    *,
    job: Sequence[str],
    schedule_name: str,
    credential: SqlCredential | None = None,
    new_name: str | None = None,
    enabled: bool = False,
    disabled: bool = False,
    frequency_type: str | int | None = None,
    frequency_interval: Sequence[str | int] | None = None,
    frequency_subday_type: str | int | None = None,
    frequency_subday_interval: int | None = None,
    frequency_relative_interval: str | int | None = None,
    frequency_recurrence_factor: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[ScheduleResult]:
    """Update the named schedule of each job on each instance.

    Arguments are validated before any connection is opened. Missing jobs or
    schedules are reported and processing continues with the next job.
    """
    try:
        changes = build_schedule_changes(
            new_name=new_name,
            enabled=enabled,
            disabled=disabled,
            frequency_type=frequency_type,
            frequency_interval=frequency_interval,
            frequency_subday_type=frequency_subday_type,
            frequency_subday_interval=frequency_subday_interval,
            frequency_relative_interval=frequency_relative_interval,
            frequency_recurrence_factor=frequency_recurrence_factor,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
        )
    except ScheduleValidationError as e:
        stop_function(
            str(e),
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    if changes.is_empty():
        stop_function(
            "Nothing to change; supply at least one schedule property",
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    should_process = ShouldProcess(dry_run, confirm)
    results: list[ScheduleResult] = []

    for instance in sql_instance:
        try:
            server = connect_instance(instance, credential)
        except InstanceConnectionError as e:
            stop_function(
                "Failure",
                category=ErrorCategory.CONNECTION,
                target=instance,
                error=e,
                enable_exception=enable_exception,
            )
            continue

        try:
            for job_name in job:
                results.extend(
                    _update_job_schedules(
                        server, job_name, schedule_name, changes,
                        should_process, enable_exception,
                    ),
                )
        except DbaCommandError:
            raise
        except Exception as e:
            stop_function(
                "Failure",
                category=ErrorCategory.INVALID_OPERATION,
                target=server.name,
                error=e,
                enable_exception=enable_exception,
            )
        finally:
            server.close()

    return results


def _update_job_schedules(
    server: SqlInstance,
    job_name: str,
    schedule_name: str,
    changes: ScheduleChanges,
    should_process: ShouldProcess,
    enable_exception: bool,
) -> list[ScheduleResult]:
    if not job_exists(server, job_name):
        stop_function(
            f"Job {job_name} doesn't exist on {server.name}",
            category=ErrorCategory.OBJECT_NOT_FOUND,
            target=server.name,
            enable_exception=enable_exception,
        )
        return []

    schedules = get_job_schedules(server, job_name, schedule_name)
    if not schedules:
        stop_function(
            f"Schedule {schedule_name} is not attached to job {job_name}",
            category=ErrorCategory.OBJECT_NOT_FOUND,
            target=server.name,
            enable_exception=enable_exception,
        )
        return []

    results: list[ScheduleResult] = []
    for schedule in schedules:
        schedule_id = int(schedule["schedule_id"])
        result = ScheduleResult(
            sql_instance=server.name,
            job=job_name,
            schedule_name=schedule_name,
            schedule_id=schedule_id,
            changes=changes.as_parameters(),
        )
        action = f"Updating schedule {schedule_name} ({schedule_id}) on job {job_name}"
        if not should_process(server.name, action):
            continue
        try:
            update_schedule(server, schedule_id, changes)
        except Exception as e:
            stop_function(
                f"Something went wrong updating schedule {schedule_name}",
                category=ErrorCategory.INVALID_OPERATION,
                target=server.name,
                error=e,
                enable_exception=enable_exception,
            )
            result.status = "Failed"
            result.notes = str(e)
            results.append(result)
            continue

        print_verbose(f"sp_update_schedule {result.changes}")
        print_success(f"Updated schedule {schedule_name} on job {job_name}")
        results.append(result)

    return results
