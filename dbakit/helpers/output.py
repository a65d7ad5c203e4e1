"""Render command results as a console table, JSON or YAML."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from dbakit.helpers.helpers_logging import Colors
from dbakit.helpers.yaml_loader import dump_yaml

OUTPUT_FORMATS = ("table", "json", "yaml")

_STATUS_COLORS = {
    "Successful": Colors.OKGREEN,
    "Skipped": Colors.YELLOW,
    "Failed": Colors.RED,
}

_MAX_CELL = 60


def record_to_dict(record: object) -> dict[str, Any]:
    """Convert a result record to a plain dict."""
    to_dict = getattr(record, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    if is_dataclass(record) and not isinstance(record, type):
        return asdict(record)
    raise TypeError(f"Cannot render record of type {type(record).__name__}")


def _plain(value: object) -> object:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    return value


def _cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value)
    text = str(value)
    if len(text) > _MAX_CELL:
        return text[: _MAX_CELL - 3] + "..."
    return text


def format_table(rows: Sequence[dict[str, Any]]) -> str:
    """Format dict rows as an aligned text table."""
    if not rows:
        return ""
    columns = list(rows[0].keys())
    cells = [[_cell(row.get(col)) for col in columns] for row in rows]
    widths = [
        max(len(col), *(len(r[i]) for r in cells))
        for i, col in enumerate(columns)
    ]

    lines = ["  ".join(col.ljust(widths[i]) for i, col in enumerate(columns))]
    lines.append("  ".join("-" * w for w in widths))
    for row in cells:
        parts: list[str] = []
        for i, text in enumerate(row):
            padded = text.ljust(widths[i])
            color = _STATUS_COLORS.get(text) if columns[i] == "Status" else None
            parts.append(f"{color}{padded}{Colors.ENDC}" if color else padded)
        lines.append("  ".join(parts).rstrip())
    return "\n".join(lines)


def render_records(records: Sequence[object], fmt: str = "table") -> str:
    """Render records in one of ``OUTPUT_FORMATS``."""
    rows = [
        {key: _plain(value) for key, value in record_to_dict(r).items()}
        for r in records
    ]
    if fmt == "json":
        return json.dumps(rows, indent=2, default=str)
    if fmt == "yaml":
        return dump_yaml(rows) if rows else "[]\n"
    if fmt == "table":
        return format_table(rows)
    raise ValueError(f"Unknown output format: {fmt}")
