"""Connection helper shared by every command.

``connect_instance`` resolves a target (alias from instances.yaml or a
``host\\instance,port`` address), opens a pymssql connection and loads the
server properties commands branch on (name, version, edition).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, cast

from dbakit.helpers.errors import ConfigError, InstanceConnectionError
from dbakit.helpers.helpers_logging import print_verbose
from dbakit.helpers.instance_config import (
    InstanceConfig,
    SqlCredential,
    resolve_connection,
)
from dbakit.helpers.mssql_loader import create_mssql_connection
from dbakit.helpers.tsql import quote_name

if TYPE_CHECKING:
    from dbakit.helpers.mssql_types import MSSQLConnection

_PROPERTIES_SQL = """
SELECT
    @@SERVERNAME AS server_name,
    CAST(SERVERPROPERTY('MachineName') AS nvarchar(128)) AS computer_name,
    CAST(SERVERPROPERTY('InstanceName') AS nvarchar(128)) AS instance_name,
    CAST(SERVERPROPERTY('ProductVersion') AS nvarchar(128)) AS product_version,
    CAST(SERVERPROPERTY('Edition') AS nvarchar(128)) AS edition
"""

# SQL Server major version numbers
SQL2008 = 10
SQL2012 = 11
SQL2014 = 12
SQL2016 = 13


class SqlInstance:
    """Live handle to one SQL Server instance."""

    def __init__(
        self,
        target: str,
        connection: MSSQLConnection,
        default_database: str = "master",
    ) -> None:
        self.target = target
        self._conn = connection
        self.default_database = default_database
        self._current_database = default_database
        self.name = target
        self.computer_name = target
        self.instance_name = "MSSQLSERVER"
        self.product_version = ""
        self.version_major = 0
        self.edition = ""

    def __repr__(self) -> str:
        return f"SqlInstance({self.name!r}, version={self.version_major})"

    def __enter__(self) -> SqlInstance:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_properties(self) -> None:
        """Read server name, version and edition."""
        row = self.query_one(_PROPERTIES_SQL)
        if row is None:
            return
        self.name = str(row.get("server_name") or self.target)
        self.computer_name = str(row.get("computer_name") or self.name)
        self.instance_name = str(row.get("instance_name") or "MSSQLSERVER")
        self.product_version = str(row.get("product_version") or "")
        self.edition = str(row.get("edition") or "")
        major = self.product_version.split(".", 1)[0]
        self.version_major = int(major) if major.isdigit() else 0

    def _use(self, database: str | None) -> None:
        wanted = database or self.default_database
        if wanted == self._current_database:
            return
        cursor = self._conn.cursor()
        try:
            cursor.execute(f"USE {quote_name(wanted)}")
        finally:
            cursor.close()
        self._current_database = wanted

    def query(
        self,
        sql: str,
        params: Sequence[object] | None = None,
        database: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a batch that returns rows; rows come back as dicts."""
        self._use(database)
        print_verbose(f"[{self.name}] {' '.join(sql.split())[:200]}")
        cursor = self._conn.cursor(as_dict=True)
        try:
            cursor.execute(sql, tuple(params) if params is not None else None)
            return cast(list[dict[str, Any]], cursor.fetchall())
        finally:
            cursor.close()

    def query_one(
        self,
        sql: str,
        params: Sequence[object] | None = None,
        database: str | None = None,
    ) -> dict[str, Any] | None:
        """Run a batch and return its first row, or None."""
        rows = self.query(sql, params, database)
        return rows[0] if rows else None

    def execute(
        self,
        sql: str,
        params: Sequence[object] | None = None,
        database: str | None = None,
    ) -> None:
        """Run a batch that returns no rows."""
        self._use(database)
        print_verbose(f"[{self.name}] {' '.join(sql.split())[:200]}")
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, tuple(params) if params is not None else None)
        finally:
            cursor.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()


def connect_instance(
    target: str,
    credential: SqlCredential | None = None,
    database: str | None = None,
    min_version: int | None = None,
    config: InstanceConfig | None = None,
) -> SqlInstance:
    """Open a connection to ``target`` and load its server properties.

    Args:
        target: instances.yaml alias or ``host[\\instance][,port]``.
        credential: Explicit SQL credential; see ``resolve_connection``.
        database: Initial database (default from config, else master).
        min_version: Minimum SQL Server major version required.
        config: Pre-loaded instances.yaml, mainly for tests.

    Raises:
        InstanceConnectionError: On any resolution, driver or version failure.
    """
    try:
        settings = resolve_connection(target, credential, config)
    except (ConfigError, ValueError) as e:
        raise InstanceConnectionError(str(e), target) from e

    initial_db = database or settings.database
    try:
        conn = create_mssql_connection(
            host=settings.address.server,
            port=settings.address.port,
            database=initial_db,
            user=settings.credential.user,
            password=settings.credential.password,
            login_timeout=settings.login_timeout,
        )
    except Exception as e:
        raise InstanceConnectionError(f"Failure connecting to {target}: {e}", target) from e

    instance = SqlInstance(target, conn, initial_db)
    try:
        instance.load_properties()
    except Exception as e:
        instance.close()
        raise InstanceConnectionError(
            f"Failure reading server properties from {target}: {e}", target,
        ) from e

    if min_version is not None and instance.version_major < min_version:
        instance.close()
        raise InstanceConnectionError(
            f"{target} is version {instance.version_major}; "
            + f"this command requires version {min_version} or higher",
            target,
        )

    return instance
