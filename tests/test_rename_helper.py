"""Unit tests for rename_helper.py and rename_maps.py.

Covers:
- Rename tables are read-only and no new name is an old name
- rename_content token boundaries and case handling
- invoke_rename_helper (in-place rewrite, idempotence, dry-run, CRLF, encodings)
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dbakit.core.rename_helper import (
    expand_script_paths,
    invoke_rename_helper,
    rename_content,
    resolve_encoding,
)
from dbakit.core.rename_maps import COMMAND_RENAMES, PARAMETER_RENAMES
from dbakit.helpers.errors import DbaCommandError

# ---------------------------------------------------------------------------
# Rename tables
# ---------------------------------------------------------------------------


class TestRenameMaps:
    """The tables must be safe to apply repeatedly."""

    @pytest.mark.parametrize("table", [PARAMETER_RENAMES, COMMAND_RENAMES])
    def test_read_only(self, table: object) -> None:
        with pytest.raises(TypeError):
            table["Anything"] = "Else"  # type: ignore[index]

    @pytest.mark.parametrize("table", [PARAMETER_RENAMES, COMMAND_RENAMES])
    def test_no_new_name_is_an_old_name(self, table: dict[str, str]) -> None:
        old_names = {k.lower() for k in table}
        assert not [v for v in table.values() if v.lower() in old_names]

    @pytest.mark.parametrize("table", [PARAMETER_RENAMES, COMMAND_RENAMES])
    def test_no_case_insensitive_duplicates(self, table: dict[str, str]) -> None:
        assert len({k.lower() for k in table}) == len(table)

    def test_known_entries(self) -> None:
        assert PARAMETER_RENAMES["NoSystem"] == "ExcludeSystemLogins"
        assert PARAMETER_RENAMES["Silent"] == "EnableException"
        assert COMMAND_RENAMES["Copy-SqlDatabaseMail"] == "Copy-DbaDbMail"


# ---------------------------------------------------------------------------
# rename_content
# ---------------------------------------------------------------------------


class TestRenameContent:
    """Token-aware replacement."""

    def test_parameter_token_replaced(self) -> None:
        content, matched = rename_content("Get-DbaLogin -SqlServer sql01 -NoSystem")
        assert content == "Get-DbaLogin -SqlInstance sql01 -ExcludeSystemLogins"
        assert ("SqlServer", "SqlInstance") in matched
        assert ("NoSystem", "ExcludeSystemLogins") in matched

    def test_parameter_name_without_dash_untouched(self) -> None:
        text = "$SqlServer = 'sql01'"
        content, matched = rename_content(text)
        assert content == text
        assert matched == []

    def test_command_whole_token_only(self) -> None:
        content, _ = rename_content("Get-DbaTable; Get-DbaTableSpace")
        assert content == "Get-DbaDbTable; Get-DbaTableSpace"

    def test_case_insensitive(self) -> None:
        content, _ = rename_content("copy-sqldatabasemail -silent")
        assert content == "Copy-DbaDbMail -EnableException"

    def test_second_pass_is_noop(self) -> None:
        once, _ = rename_content("Copy-SqlDatabaseMail -SqlServer a -Silent\n")
        twice, matched = rename_content(once)
        assert twice == once
        assert matched == []


# ---------------------------------------------------------------------------
# Paths and encodings
# ---------------------------------------------------------------------------


class TestPathsAndEncodings:
    def test_directory_expands_to_scripts(self, tmp_path: Path) -> None:
        (tmp_path / "a.ps1").write_text("")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.PSM1").write_text("")
        (tmp_path / "notes.txt").write_text("")

        found = expand_script_paths([tmp_path])

        assert [p.name for p in found] == ["a.ps1", "b.PSM1"]

    @pytest.mark.parametrize(
        ("name", "codec"),
        [
            ("UTF8", "utf-8"),
            ("Unicode", "utf-16-le"),
            ("BigEndianUnicode", "utf-16-be"),
            ("ascii", "ascii"),
            ("latin-1", "iso8859-1"),
        ],
    )
    def test_resolve_encoding(self, name: str, codec: str) -> None:
        assert resolve_encoding(name) == codec

    def test_unknown_encoding(self) -> None:
        with pytest.raises(ValueError):
            resolve_encoding("klingon")


# ---------------------------------------------------------------------------
# invoke_rename_helper
# ---------------------------------------------------------------------------


class TestInvokeRenameHelper:
    """In-place rewriting of script files."""

    def test_rewrites_and_reports(self, tmp_path: Path) -> None:
        script = tmp_path / "deploy.ps1"
        script.write_text("Copy-SqlDatabaseMail -Source a -Destination b -Silent\n")

        results = invoke_rename_helper([script])

        assert script.read_text() == "Copy-DbaDbMail -Source a -Destination b -EnableException\n"
        assert {(r.pattern, r.replaced_with) for r in results} == {
            ("Copy-SqlDatabaseMail", "Copy-DbaDbMail"),
            ("Silent", "EnableException"),
        }
        assert all(r.path == script for r in results)

    def test_second_run_changes_nothing(self, tmp_path: Path) -> None:
        script = tmp_path / "deploy.ps1"
        script.write_text("Get-DbaTable -SqlServer x\n")
        invoke_rename_helper([script])
        after_first = script.read_text()

        results = invoke_rename_helper([script])

        assert results == []
        assert script.read_text() == after_first

    def test_untouched_file_not_written(self, tmp_path: Path) -> None:
        script = tmp_path / "clean.ps1"
        script.write_text("Get-DbaDbTable -SqlInstance x\n")
        before = script.stat().st_mtime_ns

        assert invoke_rename_helper([script]) == []
        assert script.stat().st_mtime_ns == before

    def test_dry_run_leaves_file(self, tmp_path: Path) -> None:
        script = tmp_path / "deploy.ps1"
        script.write_text("Get-DbaTable\n")

        results = invoke_rename_helper([script], dry_run=True)

        assert results == []
        assert script.read_text() == "Get-DbaTable\n"

    def test_declined_pattern_kept(self, tmp_path: Path) -> None:
        script = tmp_path / "deploy.ps1"
        script.write_text("Get-DbaTable -Silent\n")

        results = invoke_rename_helper(
            [script], confirm=lambda _target, action: "Silent" in action,
        )

        assert script.read_text() == "Get-DbaTable -EnableException\n"
        assert [r.pattern for r in results] == ["Silent"]

    def test_crlf_preserved(self, tmp_path: Path) -> None:
        script = tmp_path / "win.ps1"
        script.write_bytes(b"Get-DbaTable\r\n-Silent\r\n")

        invoke_rename_helper([script])

        assert script.read_bytes() == b"Get-DbaDbTable\r\n-EnableException\r\n"

    def test_utf16_encoding(self, tmp_path: Path) -> None:
        script = tmp_path / "u.ps1"
        script.write_bytes("Get-DbaTable\n".encode("utf-16-le"))

        invoke_rename_helper([script], encoding="Unicode")

        assert script.read_bytes().decode("utf-16-le") == "Get-DbaDbTable\n"

    def test_missing_file_reported_and_skipped(self, tmp_path: Path) -> None:
        good = tmp_path / "good.ps1"
        good.write_text("Get-DbaTable\n")

        results = invoke_rename_helper([tmp_path / "missing.ps1", good])

        assert [r.path for r in results] == [good]

    def test_missing_file_raises_in_exception_mode(self, tmp_path: Path) -> None:
        with pytest.raises(DbaCommandError):
            invoke_rename_helper([tmp_path / "missing.ps1"], enable_exception=True)
