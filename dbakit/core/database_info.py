"""Read database metadata from one or more instances."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.instance import SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential

SYSTEM_DATABASES = ("master", "model", "msdb", "tempdb")

# --status value -> sys.databases.state_desc; STANDBY matches the is_in_standby flag
DATABASE_STATUSES: dict[str, str] = {
    "emergencymode": "EMERGENCY",
    "normal": "ONLINE",
    "offline": "OFFLINE",
    "recovering": "RECOVERING",
    "recoverypending": "RECOVERY_PENDING",
    "restoring": "RESTORING",
    "standby": "STANDBY",
    "suspect": "SUSPECT",
}

DATABASE_ACCESS: dict[str, bool] = {"readonly": True, "readwrite": False}

RECOVERY_MODELS: dict[str, str] = {
    "full": "FULL",
    "simple": "SIMPLE",
    "bulklogged": "BULK_LOGGED",
}

_DATABASES_SQL = """
SELECT d.name, d.state_desc, d.is_in_standby, d.is_read_only,
       d.recovery_model_desc, d.log_reuse_wait_desc, d.compatibility_level,
       d.collation_name, SUSER_SNAME(d.owner_sid) AS owner,
       d.is_encrypted, d.database_id, d.create_date,
       CAST(HAS_DBACCESS(d.name) AS bit) AS is_accessible,
       CAST(SUM(CAST(f.size AS bigint)) * 8 / 1024.0 AS decimal(18, 2)) AS size_mb
FROM sys.databases AS d
LEFT JOIN sys.master_files AS f ON f.database_id = d.database_id
GROUP BY d.name, d.state_desc, d.is_in_standby, d.is_read_only,
         d.recovery_model_desc, d.log_reuse_wait_desc, d.compatibility_level,
         d.collation_name, d.owner_sid, d.is_encrypted, d.database_id, d.create_date
ORDER BY d.name
"""

_BACKUPS_SQL = """
SELECT database_name, type, MAX(backup_finish_date) AS last_backup
FROM msdb.dbo.backupset
GROUP BY database_name, type
"""

# backupset.type -> DatabaseInfo field
_BACKUP_FIELDS = {"D": "last_full_backup", "I": "last_diff_backup", "L": "last_log_backup"}


@dataclass
class DatabaseInfo:
    """One database's metadata as read from the instance."""

    computer_name: str
    instance_name: str
    sql_instance: str
    name: str
    status: str
    is_accessible: bool
    recovery_model: str
    log_reuse_wait_status: str
    size_mb: float
    compatibility: int
    collation: str | None
    owner: str | None
    encrypted: bool
    is_system_object: bool
    create_date: datetime | None = None
    last_full_backup: datetime | None = None
    last_diff_backup: datetime | None = None
    last_log_backup: datetime | None = None
    read_only: bool = False
    standby: bool = False

    @property
    def statuses(self) -> tuple[str, ...]:
        """The state plus STANDBY for a database restored with standby."""
        return (self.status, "STANDBY") if self.standby else (self.status,)

    def to_dict(self) -> dict[str, object]:
        return {
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "SqlInstance": self.sql_instance,
            "Name": self.name,
            "Status": ", ".join(self.statuses),
            "IsAccessible": self.is_accessible,
            "RecoveryModel": self.recovery_model,
            "LogReuseWaitStatus": self.log_reuse_wait_status,
            "SizeMB": self.size_mb,
            "Compatibility": self.compatibility,
            "Collation": self.collation,
            "Owner": self.owner,
            "Encrypted": self.encrypted,
            "LastFullBackup": self.last_full_backup,
            "LastDiffBackup": self.last_diff_backup,
            "LastLogBackup": self.last_log_backup,
        }


@dataclass
class DatabaseFilter:
    """Validated selection criteria for ``get_database``."""

    database: frozenset[str] | None = None
    exclude_database: frozenset[str] = frozenset()
    exclude_user: bool = False
    exclude_system: bool = False
    states: frozenset[str] | None = None
    read_only: bool | None = None
    owner: frozenset[str] | None = None
    encrypted: bool = False
    recovery_models: frozenset[str] | None = None

    def matches(self, db: DatabaseInfo) -> bool:
        key = db.name.lower()
        if self.database is not None and key not in self.database:
            return False
        if key in self.exclude_database:
            return False
        if self.exclude_user and not db.is_system_object:
            return False
        if self.exclude_system and db.is_system_object:
            return False
        if self.states is not None and self.states.isdisjoint(db.statuses):
            return False
        if self.read_only is not None and db.read_only != self.read_only:
            return False
        if self.owner is not None and (db.owner or "").lower() not in self.owner:
            return False
        if self.encrypted and not db.encrypted:
            return False
        return self.recovery_models is None or db.recovery_model in self.recovery_models


def _lookup(values: Sequence[str] | None, table: dict[str, Any], label: str) -> list[Any] | None:
    if not values:
        return None
    resolved: list[Any] = []
    for value in values:
        key = value.replace("_", "").replace(" ", "").lower()
        if key not in table:
            raise ValueError(f"Invalid {label} '{value}'")
        resolved.append(table[key])
    return resolved


def build_database_filter(
    *,
    database: Sequence[str] | None = None,
    exclude_database: Sequence[str] | None = None,
    exclude_user: bool = False,
    exclude_system: bool = False,
    status: Sequence[str] | None = None,
    access: str | None = None,
    owner: Sequence[str] | None = None,
    encrypted: bool = False,
    recovery_model: Sequence[str] | None = None,
) -> DatabaseFilter:
    """Validate arguments into a ``DatabaseFilter``.

    Raises:
        ValueError: On conflicting switches or unknown status, access or
            recovery model values.
    """
    if exclude_user and exclude_system:
        raise ValueError("You cannot specify both exclude_user and exclude_system")

    states = _lookup(status, DATABASE_STATUSES, "status")
    access_values = _lookup([access] if access else None, DATABASE_ACCESS, "access")
    models = _lookup(recovery_model, RECOVERY_MODELS, "recovery model")

    return DatabaseFilter(
        database=frozenset(d.lower() for d in database) if database else None,
        exclude_database=frozenset(d.lower() for d in exclude_database or ()),
        exclude_user=exclude_user,
        exclude_system=exclude_system,
        states=frozenset(states) if states is not None else None,
        read_only=access_values[0] if access_values else None,
        owner=frozenset(o.lower() for o in owner) if owner else None,
        encrypted=encrypted,
        recovery_models=frozenset(models) if models is not None else None,
    )


def get_database_rows(server: SqlInstance) -> list[dict[str, Any]]:
    return server.query(_DATABASES_SQL)


def get_last_backups(server: SqlInstance) -> dict[str, dict[str, datetime]]:
    """Latest backup finish time per database and backup type field."""
    backups: dict[str, dict[str, datetime]] = {}
    for row in server.query(_BACKUPS_SQL):
        field_name = _BACKUP_FIELDS.get(str(row["type"]).strip())
        if field_name is None or row.get("last_backup") is None:
            continue
        backups.setdefault(str(row["database_name"]).lower(), {})[field_name] = row["last_backup"]
    return backups


def _to_info(server: SqlInstance, row: dict[str, Any], backups: dict[str, datetime]) -> DatabaseInfo:
    name = str(row["name"])
    return DatabaseInfo(
        computer_name=server.computer_name,
        instance_name=server.instance_name,
        sql_instance=server.name,
        name=name,
        status=str(row.get("state_desc") or ""),
        is_accessible=bool(row.get("is_accessible")),
        recovery_model=str(row.get("recovery_model_desc") or ""),
        log_reuse_wait_status=str(row.get("log_reuse_wait_desc") or ""),
        size_mb=float(row.get("size_mb") or 0),
        compatibility=int(row.get("compatibility_level") or 0),
        collation=row.get("collation_name"),
        owner=row.get("owner"),
        encrypted=bool(row.get("is_encrypted")),
        is_system_object=name.lower() in SYSTEM_DATABASES,
        create_date=row.get("create_date"),
        last_full_backup=backups.get("last_full_backup"),
        last_diff_backup=backups.get("last_diff_backup"),
        last_log_backup=backups.get("last_log_backup"),
        read_only=bool(row.get("is_read_only")),
        standby=bool(row.get("is_in_standby")),
    )


def get_database(
    sql_instance: Sequence[str],
    *,
    credential: SqlCredential | None = None,
    database: Sequence[str] | None = None,
    exclude_database: Sequence[str] | None = None,
    exclude_user: bool = False,
    exclude_system: bool = False,
    status: Sequence[str] | None = None,
    access: str | None = None,
    owner: Sequence[str] | None = None,
    encrypted: bool = False,
    recovery_model: Sequence[str] | None = None,
    enable_exception: bool = False,
) -> list[DatabaseInfo]:
    """Return metadata for the databases on each instance that match the filters."""
    try:
        criteria = build_database_filter(
            database=database,
            exclude_database=exclude_database,
            exclude_user=exclude_user,
            exclude_system=exclude_system,
            status=status,
            access=access,
            owner=owner,
            encrypted=encrypted,
            recovery_model=recovery_model,
        )
    except ValueError as e:
        stop_function(
            str(e),
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    results: list[DatabaseInfo] = []
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
            backups = get_last_backups(server)
            for row in get_database_rows(server):
                info = _to_info(server, row, backups.get(str(row["name"]).lower(), {}))
                if criteria.matches(info):
                    results.append(info)
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
