"""Unit tests for agent_schedule.py.

Covers:
- Weekly interval bit-flag folding (named groups, order independence)
- encode_frequency_interval per frequency type
- build_schedule_changes validation (before any connection)
- set_agent_schedule (with mocked server access, dry-run, missing jobs)
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from dbakit.core.agent_schedule import (
    FrequencyType,
    ScheduleValidationError,
    WeekDay,
    build_schedule_changes,
    encode_frequency_interval,
    encode_weekly_interval,
    parse_frequency_type,
    parse_schedule_date,
    parse_schedule_time,
    set_agent_schedule,
)
from dbakit.helpers.errors import DbaCommandError, ErrorCategory
from tests.conftest import fake_connect, make_server

# ---------------------------------------------------------------------------
# Weekly encoding
# ---------------------------------------------------------------------------


class TestWeeklyInterval:
    """Weekly freq_interval is the OR of the day flags."""

    def test_named_groups(self) -> None:
        assert encode_weekly_interval(["Weekdays"]) == 62
        assert encode_weekly_interval(["Weekend"]) == 65
        assert encode_weekly_interval(["EveryDay"]) == 127

    def test_single_days(self) -> None:
        assert encode_weekly_interval(["Sunday"]) == 1
        assert encode_weekly_interval(["Saturday"]) == 64

    def test_order_independent(self) -> None:
        assert encode_weekly_interval(["Monday", "Friday"]) == encode_weekly_interval(
            ["Friday", "Monday"],
        ) == 34

    def test_overlapping_values_do_not_double_count(self) -> None:
        assert encode_weekly_interval(["Weekdays", "Monday"]) == 62
        assert encode_weekly_interval(["Weekdays", "Weekend"]) == int(WeekDay.EVERYDAY)

    def test_case_insensitive_and_numeric(self) -> None:
        assert encode_weekly_interval(["monday", "TUESDAY"]) == 6
        assert encode_weekly_interval([2, "4"]) == 6

    def test_empty_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            encode_weekly_interval([])

    def test_unknown_day_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            encode_weekly_interval(["Funday"])

    def test_out_of_range_flag_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            encode_weekly_interval([128])


# ---------------------------------------------------------------------------
# Other frequency types
# ---------------------------------------------------------------------------


class TestFrequencyInterval:
    """freq_interval for non-weekly frequency types."""

    @pytest.mark.parametrize(
        "ftype",
        [FrequencyType.ONCE, FrequencyType.AGENT_START, FrequencyType.IDLE_COMPUTER],
    )
    def test_no_interval_types(self, ftype: FrequencyType) -> None:
        assert encode_frequency_interval(ftype, ["5"]) == 0

    def test_daily_defaults_to_one(self) -> None:
        assert encode_frequency_interval(FrequencyType.DAILY, None) == 1
        assert encode_frequency_interval(FrequencyType.DAILY, ["EveryDay"]) == 1
        assert encode_frequency_interval(FrequencyType.DAILY, ["3"]) == 3

    def test_daily_zero_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            encode_frequency_interval(FrequencyType.DAILY, [0])

    def test_monthly_day_range(self) -> None:
        assert encode_frequency_interval(FrequencyType.MONTHLY, ["31"]) == 31
        with pytest.raises(ScheduleValidationError):
            encode_frequency_interval(FrequencyType.MONTHLY, ["32"])

    def test_monthly_relative_names(self) -> None:
        assert encode_frequency_interval(FrequencyType.MONTHLY_RELATIVE, ["Sunday"]) == 1
        assert encode_frequency_interval(FrequencyType.MONTHLY_RELATIVE, ["Saturday"]) == 7
        assert encode_frequency_interval(FrequencyType.MONTHLY_RELATIVE, ["Day"]) == 8
        assert encode_frequency_interval(FrequencyType.MONTHLY_RELATIVE, ["Weekday"]) == 9
        assert encode_frequency_interval(FrequencyType.MONTHLY_RELATIVE, ["WeekendDay"]) == 10

    def test_multiple_values_rejected_for_daily(self) -> None:
        with pytest.raises(ScheduleValidationError):
            encode_frequency_interval(FrequencyType.DAILY, ["1", "2"])

    def test_frequency_type_aliases(self) -> None:
        assert parse_frequency_type("OneTime") is FrequencyType.ONCE
        assert parse_frequency_type("AutoStart") is FrequencyType.AGENT_START
        assert parse_frequency_type("OnIdle") is FrequencyType.IDLE_COMPUTER
        assert parse_frequency_type(32) is FrequencyType.MONTHLY_RELATIVE


# ---------------------------------------------------------------------------
# Dates and times
# ---------------------------------------------------------------------------


class TestDatesAndTimes:
    def test_valid_date(self) -> None:
        assert parse_schedule_date("20240229") == 20240229

    @pytest.mark.parametrize("value", ["20230229", "2024-01-01", "20241301", "2024011"])
    def test_invalid_dates(self, value: str) -> None:
        with pytest.raises(ScheduleValidationError):
            parse_schedule_date(value)

    def test_valid_time(self) -> None:
        assert parse_schedule_time("235959") == 235959
        assert parse_schedule_time("000000") == 0

    @pytest.mark.parametrize("value", ["240000", "126000", "120060", "1200", "12:00:00"])
    def test_invalid_times(self, value: str) -> None:
        with pytest.raises(ScheduleValidationError):
            parse_schedule_time(value)


# ---------------------------------------------------------------------------
# build_schedule_changes
# ---------------------------------------------------------------------------


class TestBuildScheduleChanges:
    """Argument validation and parameter encoding."""

    def test_weekly_sets_recurrence_default(self) -> None:
        changes = build_schedule_changes(
            frequency_type="Weekly", frequency_interval=["Weekdays"],
        )
        assert changes.as_parameters() == {
            "freq_type": 8,
            "freq_interval": 62,
            "freq_recurrence_factor": 1,
        }

    def test_enabled_and_disabled_conflict(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(enabled=True, disabled=True)

    def test_disabled_encodes_as_zero(self) -> None:
        assert build_schedule_changes(disabled=True).as_parameters() == {"enabled": 0}

    def test_interval_without_type_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(frequency_interval=["Monday"])

    def test_subday_time_forces_zero_interval(self) -> None:
        changes = build_schedule_changes(frequency_subday_type="Time")
        assert changes.freq_subday_type == 1
        assert changes.freq_subday_interval == 0

    def test_subday_minutes_range(self) -> None:
        changes = build_schedule_changes(
            frequency_subday_type="Minutes", frequency_subday_interval=15,
        )
        assert changes.freq_subday_type == 4
        assert changes.freq_subday_interval == 15
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(
                frequency_subday_type="Hours", frequency_subday_interval=24,
            )

    def test_subday_interval_requires_type(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(frequency_subday_interval=5)

    def test_relative_interval_needs_monthly_relative(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(
                frequency_type="Monthly",
                frequency_interval=["1"],
                frequency_relative_interval="First",
            )

    def test_monthly_relative_needs_relative_interval(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(
                frequency_type="MonthlyRelative", frequency_interval=["Sunday"],
            )

    def test_monthly_relative_last_friday(self) -> None:
        changes = build_schedule_changes(
            frequency_type="MonthlyRelative",
            frequency_interval=["Friday"],
            frequency_relative_interval="Last",
        )
        assert changes.freq_type == 32
        assert changes.freq_interval == 6
        assert changes.freq_relative_interval == 16

    def test_end_date_before_start_rejected(self) -> None:
        with pytest.raises(ScheduleValidationError):
            build_schedule_changes(start_date="20240201", end_date="20240101")

    def test_empty_change_set(self) -> None:
        assert build_schedule_changes().is_empty()


# ---------------------------------------------------------------------------
# set_agent_schedule
# ---------------------------------------------------------------------------


class TestSetAgentSchedule:
    """Command flow with mocked server access."""

    @patch("dbakit.core.agent_schedule.update_schedule")
    @patch("dbakit.core.agent_schedule.get_job_schedules")
    @patch("dbakit.core.agent_schedule.job_exists", return_value=True)
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_updates_each_matching_schedule(
        self,
        mock_connect: MagicMock,
        _mock_exists: MagicMock,
        mock_schedules: MagicMock,
        mock_update: MagicMock,
    ) -> None:
        server = make_server("sql01")
        mock_connect.return_value = server
        mock_schedules.return_value = [{"schedule_id": 7}, {"schedule_id": 9}]

        results = set_agent_schedule(
            ["sql01"], job=["Nightly"], schedule_name="nightly", disabled=True,
        )

        assert [r.schedule_id for r in results] == [7, 9]
        assert all(r.status == "Successful" for r in results)
        assert mock_update.call_count == 2
        server.close.assert_called_once()

    @patch("dbakit.core.agent_schedule.update_schedule")
    @patch("dbakit.core.agent_schedule.get_job_schedules", return_value=[{"schedule_id": 7}])
    @patch("dbakit.core.agent_schedule.job_exists", return_value=True)
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_dry_run_issues_no_update(
        self,
        mock_connect: MagicMock,
        _mock_exists: MagicMock,
        _mock_schedules: MagicMock,
        mock_update: MagicMock,
    ) -> None:
        mock_connect.return_value = make_server("sql01")

        results = set_agent_schedule(
            ["sql01"], job=["Nightly"], schedule_name="nightly",
            enabled=True, dry_run=True,
        )

        assert results == []
        mock_update.assert_not_called()

    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_validation_happens_before_connecting(self, mock_connect: MagicMock) -> None:
        results = set_agent_schedule(
            ["sql01"], job=["Nightly"], schedule_name="nightly",
            frequency_type="Weekly", frequency_interval=["Funday"],
        )
        assert results == []
        mock_connect.assert_not_called()

    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_validation_raises_in_exception_mode(self, mock_connect: MagicMock) -> None:
        with pytest.raises(DbaCommandError):
            set_agent_schedule(
                ["sql01"], job=["Nightly"], schedule_name="nightly",
                enable_exception=True,
            )
        mock_connect.assert_not_called()

    @patch("dbakit.core.agent_schedule.update_schedule")
    @patch("dbakit.core.agent_schedule.get_job_schedules", return_value=[{"schedule_id": 3}])
    @patch("dbakit.core.agent_schedule.job_exists")
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_missing_job_skipped_and_others_continue(
        self,
        mock_connect: MagicMock,
        mock_exists: MagicMock,
        _mock_schedules: MagicMock,
        mock_update: MagicMock,
    ) -> None:
        mock_connect.return_value = make_server("sql01")
        mock_exists.side_effect = lambda _server, job: job == "Present"

        results = set_agent_schedule(
            ["sql01"], job=["Missing", "Present"], schedule_name="s", enabled=True,
        )

        assert [r.job for r in results] == ["Present"]
        mock_update.assert_called_once()

    @patch("dbakit.core.agent_schedule.update_schedule")
    @patch("dbakit.core.agent_schedule.get_job_schedules", return_value=[{"schedule_id": 3}])
    @patch("dbakit.core.agent_schedule.job_exists", return_value=True)
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_unreachable_instance_does_not_stop_others(
        self,
        mock_connect: MagicMock,
        _mock_exists: MagicMock,
        _mock_schedules: MagicMock,
        mock_update: MagicMock,
    ) -> None:
        mock_connect.side_effect = fake_connect(
            {"down": RuntimeError("timeout"), "up": make_server("up")},
        )

        results = set_agent_schedule(
            ["down", "up"], job=["J"], schedule_name="s", enabled=True,
        )

        assert [r.sql_instance for r in results] == ["up"]
        mock_update.assert_called_once()

    @patch("dbakit.core.agent_schedule.update_schedule", side_effect=RuntimeError("boom"))
    @patch("dbakit.core.agent_schedule.get_job_schedules", return_value=[{"schedule_id": 3}])
    @patch("dbakit.core.agent_schedule.job_exists", return_value=True)
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_update_failure_recorded(
        self,
        mock_connect: MagicMock,
        _mock_exists: MagicMock,
        _mock_schedules: MagicMock,
        _mock_update: MagicMock,
    ) -> None:
        mock_connect.return_value = make_server("sql01")

        results = set_agent_schedule(["sql01"], job=["J"], schedule_name="s", enabled=True)

        assert len(results) == 1
        assert results[0].status == "Failed"
        assert results[0].notes == "boom"

    @patch("dbakit.core.agent_schedule.update_schedule")
    @patch("dbakit.core.agent_schedule.get_job_schedules", return_value=[{"schedule_id": 3}])
    @patch("dbakit.core.agent_schedule.job_exists")
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_read_error_does_not_stop_other_instances(
        self,
        mock_connect: MagicMock,
        mock_exists: MagicMock,
        _mock_schedules: MagicMock,
        mock_update: MagicMock,
    ) -> None:
        servers = {"bad": make_server("bad"), "ok": make_server("ok")}
        mock_connect.side_effect = fake_connect(servers)

        def _exists(server: MagicMock, _job: str) -> bool:
            if server.name == "bad":
                raise RuntimeError("msdb is unavailable")
            return True

        mock_exists.side_effect = _exists

        results = set_agent_schedule(["bad", "ok"], job=["J"], schedule_name="s", enabled=True)

        assert [r.sql_instance for r in results] == ["ok"]
        assert mock_update.call_args.args[0] is servers["ok"]
        servers["bad"].close.assert_called_once()

    @patch("dbakit.core.agent_schedule.job_exists", side_effect=RuntimeError("msdb is unavailable"))
    @patch("dbakit.core.agent_schedule.connect_instance")
    def test_read_error_raises_in_exception_mode(
        self,
        mock_connect: MagicMock,
        _mock_exists: MagicMock,
    ) -> None:
        mock_connect.return_value = make_server("sql01")

        with pytest.raises(DbaCommandError) as exc_info:
            set_agent_schedule(
                ["sql01"], job=["J"], schedule_name="s", enabled=True, enable_exception=True,
            )
        assert exc_info.value.category is ErrorCategory.INVALID_OPERATION
