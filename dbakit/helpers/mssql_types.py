"""Typing protocols for the pymssql connection interface.

Provides only the interface dbakit actually uses. Imported under
``TYPE_CHECKING`` so the driver stays an install-time concern.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class MSSQLCursor(Protocol):
    """pymssql cursor interface."""

    def execute(self, query: str, args: Sequence[object] | None = None) -> None:
        """Execute a SQL batch."""
        ...

    def fetchall(self) -> list[Any]:
        """Fetch all remaining rows."""
        ...

    def fetchone(self) -> tuple[Any, ...] | dict[str, Any] | None:
        """Fetch next row."""
        ...

    def nextset(self) -> bool | None:
        """Advance to the next result set."""
        ...

    def close(self) -> None:
        """Close the cursor."""
        ...


class MSSQLConnection(Protocol):
    """pymssql connection interface."""

    def cursor(self, *, as_dict: bool = False) -> MSSQLCursor:
        """Create a cursor. Use as_dict=True for dict rows."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...


class MSSQLModule(Protocol):
    """pymssql module interface."""

    def connect(
        self,
        *,
        server: str,
        port: int | str = ...,
        database: str,
        user: str | None,
        password: str | None,
        login_timeout: int,
        autocommit: bool,
        appname: str,
    ) -> MSSQLConnection:
        """Create a new connection."""
        ...
