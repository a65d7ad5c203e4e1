"""Rewrite deprecated command and parameter names in PowerShell scripts.

Usage:
    >>> from dbakit.core.rename_helper import invoke_rename_helper
    >>> results = invoke_rename_helper([Path("deploy.ps1")])
    >>> for r in results:
    ...     print(r.path, r.pattern, "->", r.replaced_with)

Parameter names are only matched as ``-Name`` parameter tokens and command
names only as whole tokens, where letters, digits, ``_`` and ``-`` all count
as token characters. ``Get-DbaTable`` therefore never matches inside
``Get-DbaTableSpace``. Matching is case-insensitive, like PowerShell itself.
"""

from __future__ import annotations

import codecs
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from dbakit.core.rename_maps import COMMAND_RENAMES, PARAMETER_RENAMES
from dbakit.helpers.errors import ErrorCategory, stop_function
from dbakit.helpers.helpers_logging import print_info, print_success
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess

SCRIPT_SUFFIXES = (".ps1", ".psm1", ".psd1")

# PowerShell -Encoding names mapped to Python codecs
POWERSHELL_ENCODINGS: dict[str, str] = {
    "ascii": "ascii",
    "bigendianunicode": "utf-16-be",
    "unicode": "utf-16-le",
    "utf7": "utf-7",
    "utf8": "utf-8",
    "utf32": "utf-32",
    "string": "utf-16-le",
    "default": "utf-8",
}


@dataclass
class RenameResult:
    """One deprecated name replaced in one file."""

    path: Path
    pattern: str
    replaced_with: str

    def to_dict(self) -> dict[str, object]:
        return {
            "Path": str(self.path),
            "Pattern": self.pattern,
            "ReplacedWith": self.replaced_with,
        }


@dataclass(frozen=True)
class _Rule:
    old: str
    new: str
    replacement: str
    regex: re.Pattern[str]

    def apply(self, content: str) -> str:
        return self.regex.sub(self.replacement, content)


def _parameter_rule(old: str, new: str) -> _Rule:
    regex = re.compile(rf"(?<![\w-])-{re.escape(old)}(?![\w-])", re.IGNORECASE)
    return _Rule(old, new, f"-{new}", regex)


def _command_rule(old: str, new: str) -> _Rule:
    regex = re.compile(rf"(?<![\w-]){re.escape(old)}(?![\w-])", re.IGNORECASE)
    return _Rule(old, new, new, regex)


def _build_rules(
    parameters: Mapping[str, str],
    commands: Mapping[str, str],
) -> tuple[_Rule, ...]:
    rules = [_parameter_rule(old, new) for old, new in parameters.items()]
    rules.extend(_command_rule(old, new) for old, new in commands.items())
    return tuple(rules)


_RULES = _build_rules(PARAMETER_RENAMES, COMMAND_RENAMES)


def resolve_encoding(name: str) -> str:
    """Map a PowerShell or Python encoding name to a Python codec name.

    Raises:
        ValueError: If the name is neither.
    """
    key = name.replace("-", "").replace("_", "").lower()
    codec = POWERSHELL_ENCODINGS.get(key, name)
    try:
        return codecs.lookup(codec).name
    except LookupError as e:
        raise ValueError(f"Unknown encoding: {name}") from e


def expand_script_paths(paths: Iterable[Path]) -> list[Path]:
    """Expand directories to the PowerShell scripts they contain."""
    expanded: list[Path] = []
    for path in paths:
        if path.is_dir():
            expanded.extend(
                sorted(
                    p for p in path.rglob("*")
                    if p.is_file() and p.suffix.lower() in SCRIPT_SUFFIXES
                ),
            )
        else:
            expanded.append(path)
    return expanded


def rename_content(content: str) -> tuple[str, list[tuple[str, str]]]:
    """Apply every rename rule to ``content``.

    Returns:
        The rewritten text and the ``(old, new)`` pairs that matched.
    """
    matched: list[tuple[str, str]] = []
    for rule in _RULES:
        if rule.regex.search(content) is None:
            continue
        content = rule.apply(content)
        matched.append((rule.old, rule.new))
    return content, matched


def _read_script(path: Path, codec: str) -> str:
    # newline="" keeps CRLF files CRLF on rewrite
    with path.open(encoding=codec, newline="") as f:
        return f.read()


def _write_script(path: Path, content: str, codec: str) -> None:
    with path.open("w", encoding=codec, newline="") as f:
        f.write(content)


def invoke_rename_helper(
    paths: Iterable[Path],
    *,
    encoding: str = "utf-8",
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[RenameResult]:
    """Rewrite deprecated names in each script, in place.

    A file is only written when at least one name matched and the change was
    approved. Unreadable files are reported and skipped.

    Args:
        paths: Script files or directories containing scripts.
        encoding: Python codec or PowerShell encoding name (UTF8, Unicode ...).
        dry_run: Report what would change without writing.
        confirm: Optional approval callback per file and pattern.
        enable_exception: Raise instead of reporting failures.

    Returns:
        One result per replaced name per file.
    """
    try:
        codec = resolve_encoding(encoding)
    except ValueError as e:
        stop_function(
            str(e),
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    should_process = ShouldProcess(dry_run, confirm)
    results: list[RenameResult] = []

    for path in expand_script_paths(paths):
        try:
            original = _read_script(path, codec)
        except (OSError, UnicodeDecodeError) as e:
            stop_function(
                f"Cannot read {path}",
                category=ErrorCategory.OBJECT_NOT_FOUND,
                target=str(path),
                error=e,
                enable_exception=enable_exception,
            )
            continue

        _, matched = rename_content(original)
        if not matched:
            continue

        approved = [
            (old, new) for old, new in matched
            if should_process(str(path), f"Replacing {old} with {new}")
        ]
        if not approved:
            continue

        # Only approved renames are applied; declined ones stay in the file.
        approved_names = {old for old, _new in approved}
        content = original
        for rule in _RULES:
            if rule.old in approved_names:
                content = rule.apply(content)

        try:
            _write_script(path, content, codec)
        except OSError as e:
            stop_function(
                f"Cannot write {path}",
                category=ErrorCategory.WRITE_ERROR,
                target=str(path),
                error=e,
                enable_exception=enable_exception,
            )
            continue

        print_success(f"Updated {path} ({len(approved)} replacement(s))")
        results.extend(RenameResult(path, old, new) for old, new in approved)

    if not results:
        print_info("No deprecated names found")
    return results
