# pyright: reportMissingImports=false
"""Type-safe pymssql loader.

Provides a single import point for pymssql with proper type hints.
All modules should import from here instead of importing pymssql directly.

Usage:
    from dbakit.helpers.mssql_loader import create_mssql_connection

    conn = create_mssql_connection(host, port, "master", user, password)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from dbakit.helpers.mssql_types import (
        MSSQLConnection,
        MSSQLCursor,
        MSSQLModule,
    )

# ---------------------------------------------------------------------------
# Runtime import
# ---------------------------------------------------------------------------

_mssql_module: MSSQLModule | None = None
has_pymssql: bool = False

try:
    import pymssql as _pymssql_raw

    _mssql_module = cast("MSSQLModule", _pymssql_raw)
    has_pymssql = True
except ImportError:
    pass


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

APP_NAME = "dbakit"

_INSTALL_HINT = (
    "pymssql is not installed. Install it with: pip install pymssql\n"
    "Note: pymssql requires FreeTDS. On macOS: brew install freetds"
)


class MSSQLNotAvailableError(Exception):
    """Raised when pymssql is not installed but a connection is requested."""


def ensure_pymssql() -> MSSQLModule:
    """Return the pymssql module or raise with a helpful message.

    Raises:
        MSSQLNotAvailableError: If pymssql is not installed.
    """
    if _mssql_module is None:
        raise MSSQLNotAvailableError(_INSTALL_HINT)
    return _mssql_module


def create_mssql_connection(
    host: str,
    port: int | None,
    database: str,
    user: str | None,
    password: str | None,
    login_timeout: int = 15,
) -> MSSQLConnection:
    """Create an autocommit pymssql connection.

    Administrative DDL such as ``ALTER RESOURCE GOVERNOR`` and
    ``sp_configure ... RECONFIGURE`` cannot run inside a user transaction,
    so every connection is opened in autocommit mode.

    Args:
        host: Server hostname, optionally ``host\\INSTANCE``.
        port: TCP port, or None to let the driver resolve it.
        database: Initial database.
        user: SQL login, or None for integrated authentication.
        password: Password for ``user``.
        login_timeout: Seconds to wait for the login handshake.

    Raises:
        MSSQLNotAvailableError: If pymssql is not installed.
    """
    mod = ensure_pymssql()
    if port is None:
        return mod.connect(
            server=host,
            database=database,
            user=user,
            password=password,
            login_timeout=login_timeout,
            autocommit=True,
            appname=APP_NAME,
        )
    return mod.connect(
        server=host,
        port=port,
        database=database,
        user=user,
        password=password,
        login_timeout=login_timeout,
        autocommit=True,
        appname=APP_NAME,
    )


__all__ = [
    "MSSQLConnection",
    "MSSQLCursor",
    "MSSQLModule",
    "MSSQLNotAvailableError",
    "create_mssql_connection",
    "ensure_pymssql",
    "has_pymssql",
]
