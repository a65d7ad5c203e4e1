"""Tests for the dbakit CLI: top-level dispatch and argparse entry points."""

from __future__ import annotations

import argparse
import json
from unittest.mock import MagicMock, patch

import click
import pytest

from dbakit.cli import commands
from dbakit.cli import copy_db_mail as copy_db_mail_cli
from dbakit.cli import get_database as get_database_cli
from dbakit.cli import set_db_compression as set_db_compression_cli
from dbakit.cli import set_login as set_login_cli
from dbakit.cli.common import click_confirm, credential_from, run_command
from dbakit.helpers.errors import DbaCommandError, ErrorCategory
from dbakit.helpers.status import CopyStatus, Outcome


def _args(fmt: str = "json") -> argparse.Namespace:
    return argparse.Namespace(verbose=False, format=fmt)


def _record(status: Outcome) -> CopyStatus:
    return CopyStatus("src", "dst", "ops", "Mail Account").mark(status)


# ---------------------------------------------------------------------------
# Top-level dispatch
# ---------------------------------------------------------------------------


class TestCommandsMain:
    def test_no_arguments_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert commands.main([]) == 0
        out = capsys.readouterr().out
        for name in commands.COMMANDS:
            assert name in out

    def test_help_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert commands.main(["help"]) == 0
        assert "Usage: dbakit <command>" in capsys.readouterr().out

    def test_arguments_passed_through(self) -> None:
        with patch.object(get_database_cli, "main", return_value=0) as mock_main:
            result = commands.main(["get-database", "--sql-instance", "sql01", "--format", "json"])

        assert result == 0
        mock_main.assert_called_once_with(["--sql-instance", "sql01", "--format", "json"])

    def test_exit_code_propagates(self) -> None:
        with patch.object(get_database_cli, "main", return_value=1):
            assert commands.main(["get-database", "--sql-instance", "sql01"]) == 1

    def test_argparse_usage_error_becomes_exit_code(self) -> None:
        # --sql-instance is required
        assert commands.main(["get-database"]) == 2

    def test_unknown_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert commands.execute_command("drop-everything", []) == 1
        assert "Unknown command" in capsys.readouterr().out

    def test_click_abort_returns_130(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch.object(commands._click_cli, "main", side_effect=click.Abort()):
            result = commands.main(["set-login", "--sql-instance", "sql01"])

        assert result == 130
        assert "Cancelled by user" in capsys.readouterr().out

    def test_click_exception_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        exc = click.ClickException("boom")
        with patch.object(commands._click_cli, "main", side_effect=exc):
            result = commands.main(["get-database"])

        assert result == exc.exit_code
        assert "Error: boom" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# run_command and shared helpers
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_success_prints_records(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_command(_args(), lambda: [_record(Outcome.SUCCESSFUL)]) == 0
        rows = json.loads(capsys.readouterr().out)
        assert rows[0]["Status"] == "Successful"

    def test_skipped_is_not_a_failure(self) -> None:
        assert run_command(_args(), lambda: [_record(Outcome.SKIPPED)]) == 0

    def test_failed_record_exit_code(self) -> None:
        records = [_record(Outcome.SUCCESSFUL), _record(Outcome.FAILED)]
        assert run_command(_args(), lambda: records) == 1

    def test_empty_result_prints_nothing(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_command(_args(), list) == 0
        assert capsys.readouterr().out == ""

    def test_terminating_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        def _boom() -> list[CopyStatus]:
            raise DbaCommandError("Failure", ErrorCategory.CONNECTION, "sql01")

        assert run_command(_args(), _boom) == 1
        assert "[ConnectionError]" in capsys.readouterr().out

    def test_unexpected_error_becomes_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        def _boom() -> list[CopyStatus]:
            raise RuntimeError("socket closed")

        assert run_command(_args(), _boom) == 1
        out = capsys.readouterr().out
        assert "[InvalidOperation]" in out
        assert "socket closed" in out

    def test_click_abort_propagates(self) -> None:
        def _cancel() -> list[CopyStatus]:
            raise click.Abort()

        with pytest.raises(click.Abort):
            run_command(_args(), _cancel)

    def test_credential_from(self) -> None:
        assert credential_from(None, "ignored") is None
        credential = credential_from("sa", None)
        assert credential is not None
        assert (credential.user, credential.password) == ("sa", "")

    @patch("dbakit.cli.common.click.confirm", return_value=True)
    def test_click_confirm_prompt(self, mock_confirm: MagicMock) -> None:
        assert click_confirm("sql01", "Dropping Mail Account ops") is True
        assert "Dropping Mail Account ops" in mock_confirm.call_args.args[0]
        assert mock_confirm.call_args.kwargs["default"] is False


# ---------------------------------------------------------------------------
# Entry point argument mapping
# ---------------------------------------------------------------------------


class TestEntryPoints:
    @patch("dbakit.cli.copy_db_mail.copy_db_mail", return_value=[])
    def test_copy_db_mail(self, mock_copy: MagicMock) -> None:
        result = copy_db_mail_cli.main([
            "--source", "sql01",
            "--destination", "sql02", "sql03",
            "--type", "Accounts", "Profiles",
            "--source-user", "sa", "--source-password", "pw",
            "--force", "--dry-run",
        ])

        assert result == 0
        args, kwargs = mock_copy.call_args
        assert args == ("sql01", ["sql02", "sql03"])
        assert kwargs["types"] == ["Accounts", "Profiles"]
        assert kwargs["source_credential"].user == "sa"
        assert kwargs["destination_credential"] is None
        assert kwargs["force"] is True
        assert kwargs["dry_run"] is True
        assert kwargs["confirm"] is None

    @patch("dbakit.cli.copy_db_mail.copy_db_mail", return_value=[])
    def test_confirm_flag_installs_prompt(self, mock_copy: MagicMock) -> None:
        copy_db_mail_cli.main(["--source", "a", "--destination", "b", "--confirm"])
        assert mock_copy.call_args.kwargs["confirm"] is click_confirm

    @patch("dbakit.cli.get_database.get_database", return_value=[])
    def test_get_database_filters(self, mock_get: MagicMock) -> None:
        get_database_cli.main([
            "--sql-instance", "sql01", "sql02",
            "--exclude-system",
            "--status", "Normal", "Standby",
            "--recovery-model", "Full",
        ])

        args, kwargs = mock_get.call_args
        assert args == (["sql01", "sql02"],)
        assert kwargs["exclude_system"] is True
        assert kwargs["status"] == ["Normal", "Standby"]
        assert kwargs["recovery_model"] == ["Full"]
        assert kwargs["credential"] is None

    def test_get_database_has_no_dry_run(self) -> None:
        with pytest.raises(SystemExit):
            get_database_cli.main(["--sql-instance", "sql01", "--dry-run"])

    @patch("dbakit.cli.set_login.set_login", return_value=[])
    def test_set_login_boolean_options(self, mock_set: MagicMock) -> None:
        set_login_cli.main([
            "--sql-instance", "sql01",
            "--login", "app",
            "--no-password-policy-enforced",
            "--disable",
        ])

        kwargs = mock_set.call_args.kwargs
        assert kwargs["password_policy_enforced"] is False
        assert kwargs["password_expiration_enabled"] is None
        assert kwargs["disable"] is True
        assert kwargs["password"] is None

    def test_set_login_enable_disable_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            set_login_cli.main(["--sql-instance", "a", "--login", "b", "--enable", "--disable"])

    @patch("dbakit.cli.set_db_compression.set_db_compression", return_value=[])
    def test_set_db_compression_defaults(self, mock_set: MagicMock) -> None:
        set_db_compression_cli.main(["--sql-instance", "sql01"])

        kwargs = mock_set.call_args.kwargs
        assert kwargs["compression_type"] == "Page"
        assert kwargs["max_run_time"] == 0

    def test_set_db_compression_rejects_recommended(self) -> None:
        with pytest.raises(SystemExit):
            set_db_compression_cli.main(["--sql-instance", "sql01", "--compression-type", "Recommended"])
