"""T-SQL quoting helpers.

Object names and options that end up inside dynamically built batches
(``ALTER LOGIN``, ``CREATE RESOURCE POOL`` ...) go through these helpers.
Values passed to stored procedures use driver parameters instead.
"""

from __future__ import annotations


def quote_name(name: str) -> str:
    """Quote an identifier with brackets, doubling any closing bracket.

    >>> quote_name("my]pool")
    '[my]]pool]'
    """
    return "[" + name.replace("]", "]]") + "]"


def format_option(value: bool | int) -> str:
    """Render a switch as ON/OFF and a number as itself."""
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    return str(int(value))


def format_with_options(options: dict[str, bool | int | None]) -> str:
    """Render ``WITH (A=1, B=2)`` skipping None values.

    Returns an empty string when no option has a value.
    """
    parts = [
        f"{key}={format_option(value)}"
        for key, value in options.items()
        if value is not None
    ]
    if not parts:
        return ""
    return " WITH (" + ", ".join(parts) + ")"
