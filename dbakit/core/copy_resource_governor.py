"""Copy Resource Governor settings, pools and workload groups.

The classifier function is copied first, then each user resource pool with
its workload groups, and finally the destination is enabled or disabled to
match the source.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_header, print_info
from dbakit.helpers.instance import SQL2008, SQL2012, SQL2014, SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess
from dbakit.helpers.status import CopyStatus, Outcome, copy_object
from dbakit.helpers.tsql import format_option, format_with_options, quote_name

SUPPORTED_EDITIONS = ("Enterprise", "Developer", "Datacenter", "Evaluation")
SYSTEM_POOLS = ("internal", "default")

_RECONFIGURE = "ALTER RESOURCE GOVERNOR RECONFIGURE;"

_CONFIGURATION_SQL = """
SELECT c.is_enabled,
       OBJECT_SCHEMA_NAME(c.classifier_function_id) AS schema_name,
       OBJECT_NAME(c.classifier_function_id) AS function_name,
       OBJECT_DEFINITION(c.classifier_function_id) AS definition
FROM sys.resource_governor_configuration AS c
"""

_POOLS_SQL = "SELECT * FROM sys.resource_governor_resource_pools ORDER BY name"

_WORKLOAD_GROUPS_SQL = """
SELECT g.*, p.name AS pool_name
FROM sys.resource_governor_workload_groups AS g
JOIN sys.resource_governor_resource_pools AS p ON p.pool_id = g.pool_id
ORDER BY g.name
"""

# (option, column, minimum major version)
_POOL_OPTIONS: tuple[tuple[str, str, int], ...] = (
    ("MIN_CPU_PERCENT", "min_cpu_percent", SQL2008),
    ("MAX_CPU_PERCENT", "max_cpu_percent", SQL2008),
    ("CAP_CPU_PERCENT", "cap_cpu_percent", SQL2012),
    ("MIN_MEMORY_PERCENT", "min_memory_percent", SQL2008),
    ("MAX_MEMORY_PERCENT", "max_memory_percent", SQL2008),
    ("MIN_IOPS_PER_VOLUME", "min_iops_per_volume", SQL2014),
    ("MAX_IOPS_PER_VOLUME", "max_iops_per_volume", SQL2014),
)

_GROUP_OPTIONS: tuple[tuple[str, str], ...] = (
    ("REQUEST_MAX_MEMORY_GRANT_PERCENT", "request_max_memory_grant_percent"),
    ("REQUEST_MAX_CPU_TIME_SEC", "request_max_cpu_time_sec"),
    ("REQUEST_MEMORY_GRANT_TIMEOUT_SEC", "request_memory_grant_timeout_sec"),
    ("MAX_DOP", "max_dop"),
    ("GROUP_MAX_REQUESTS", "group_max_requests"),
)


# ---------------------------------------------------------------------------
# Scripting
# ---------------------------------------------------------------------------


def script_resource_pool(pool: dict[str, Any], version_major: int) -> str:
    """``CREATE RESOURCE POOL`` with the options ``version_major`` supports."""
    options: dict[str, bool | int | None] = {
        option: int(pool[column])
        for option, column, min_version in _POOL_OPTIONS
        if version_major >= min_version and pool.get(column) is not None
    }
    return f"CREATE RESOURCE POOL {quote_name(str(pool['name']))}{format_with_options(options)};"


def script_workload_group(group: dict[str, Any]) -> str:
    """``CREATE WORKLOAD GROUP ... USING [pool]``."""
    options: list[str] = []
    importance = group.get("importance")
    if importance:
        # IMPORTANCE takes a keyword, not a literal
        options.append(f"IMPORTANCE={str(importance).upper()}")
    options.extend(
        f"{option}={format_option(int(group[column]))}"
        for option, column in _GROUP_OPTIONS
        if group.get(column) is not None
    )
    sql = f"CREATE WORKLOAD GROUP {quote_name(str(group['name']))}"
    if options:
        sql += " WITH (" + ", ".join(options) + ")"
    return sql + f" USING {quote_name(str(group['pool_name']))};"


# ---------------------------------------------------------------------------
# Server access
# ---------------------------------------------------------------------------


def get_governor_configuration(server: SqlInstance) -> dict[str, Any]:
    """Enabled state and classifier function (name and definition) if any."""
    return server.query_one(_CONFIGURATION_SQL, database="master") or {"is_enabled": False}


def get_resource_pools(server: SqlInstance) -> list[dict[str, Any]]:
    return server.query(_POOLS_SQL)


def get_workload_groups(server: SqlInstance) -> list[dict[str, Any]]:
    return server.query(_WORKLOAD_GROUPS_SQL)


def function_exists(server: SqlInstance, schema: str, name: str) -> bool:
    row = server.query_one(
        "SELECT OBJECT_ID(%s, N'FN') AS object_id",
        (f"{quote_name(schema)}.{quote_name(name)}",),
        database="master",
    )
    return bool(row and row.get("object_id"))


def drop_classifier(server: SqlInstance, schema: str, name: str) -> None:
    server.execute(
        "ALTER RESOURCE GOVERNOR WITH (CLASSIFIER_FUNCTION = NULL); " + _RECONFIGURE,
    )
    server.execute(f"DROP FUNCTION {quote_name(schema)}.{quote_name(name)};", database="master")


def create_classifier(server: SqlInstance, schema: str, name: str, definition: str) -> None:
    """Create the function in master and attach it as the classifier."""
    server.execute(definition, database="master")
    server.execute(
        "ALTER RESOURCE GOVERNOR WITH (CLASSIFIER_FUNCTION = "
        + f"{quote_name(schema)}.{quote_name(name)}); " + _RECONFIGURE,
    )


def drop_resource_pool(server: SqlInstance, pool_name: str) -> None:
    """Drop the pool's workload groups, then the pool, then reconfigure."""
    for group in get_workload_groups(server):
        if str(group["pool_name"]).lower() == pool_name.lower():
            server.execute(f"DROP WORKLOAD GROUP {quote_name(str(group['name']))};")
    server.execute(f"DROP RESOURCE POOL {quote_name(pool_name)};")
    server.execute(_RECONFIGURE)


def create_resource_pool(server: SqlInstance, pool: dict[str, Any]) -> None:
    server.execute(script_resource_pool(pool, server.version_major))
    server.execute(_RECONFIGURE)


def drop_workload_group(server: SqlInstance, name: str) -> None:
    server.execute(f"DROP WORKLOAD GROUP {quote_name(name)}; " + _RECONFIGURE)


def create_workload_group(server: SqlInstance, group: dict[str, Any]) -> None:
    server.execute(script_workload_group(group) + " " + _RECONFIGURE)


def set_governor_state(server: SqlInstance, enabled: bool) -> None:
    server.execute(_RECONFIGURE if enabled else "ALTER RESOURCE GOVERNOR DISABLE;")


def supports_resource_governor(server: SqlInstance) -> bool:
    return any(edition.lower() in server.edition.lower() for edition in SUPPORTED_EDITIONS)


# ---------------------------------------------------------------------------
# Copy steps
# ---------------------------------------------------------------------------


def _copy_settings(
    source: SqlInstance,
    dest: SqlInstance,
    source_config: dict[str, Any],
    force: bool,
    should_process: ShouldProcess,
) -> CopyStatus | None:
    name = source_config.get("function_name")
    definition = source_config.get("definition")
    if not name or not definition:
        return None
    schema = str(source_config.get("schema_name") or "dbo")
    record = CopyStatus(source.name, dest.name, str(name), "Resource Governor Settings")
    return copy_object(
        record,
        exists=function_exists(dest, schema, str(name)),
        force=force,
        drop=lambda: drop_classifier(dest, schema, str(name)),
        create=lambda: create_classifier(dest, schema, str(name), str(definition)),
        should_process=should_process,
    )


def _copy_pools(
    source: SqlInstance,
    dest: SqlInstance,
    *,
    resource_pool: Sequence[str] | None,
    exclude_resource_pool: Sequence[str] | None,
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    include = {p.lower() for p in resource_pool} if resource_pool else None
    exclude = {p.lower() for p in exclude_resource_pool or ()}

    source_groups = get_workload_groups(source)
    dest_pools = {str(p["name"]).lower() for p in get_resource_pools(dest)}
    results: list[CopyStatus] = []

    for pool in get_resource_pools(source):
        pool_name = str(pool["name"])
        key = pool_name.lower()
        if key in SYSTEM_POOLS or key in exclude or (include is not None and key not in include):
            continue

        record = CopyStatus(source.name, dest.name, pool_name, "Resource Governor Pool")

        def _drop(n: str = pool_name) -> None:
            drop_resource_pool(dest, n)

        def _create(p: dict[str, Any] = pool) -> None:
            create_resource_pool(dest, p)

        done = copy_object(
            record,
            exists=key in dest_pools,
            force=force,
            drop=_drop,
            create=_create,
            should_process=should_process,
        )
        if done is None:
            continue
        results.append(done)
        if done.status is not Outcome.SUCCESSFUL:
            continue

        pool_groups = [g for g in source_groups if str(g["pool_name"]).lower() == key]
        if pool_groups:
            results.extend(_copy_workload_groups(source, dest, pool_groups, force, should_process))

    return results


def _copy_workload_groups(
    source: SqlInstance,
    dest: SqlInstance,
    groups: list[dict[str, Any]],
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    # Workload group names are unique per instance, not per pool.
    dest_groups = {str(g["name"]).lower() for g in get_workload_groups(dest)}
    results: list[CopyStatus] = []
    for group in groups:
        name = str(group["name"])
        record = CopyStatus(
            source.name, dest.name, name, "Resource Governor Pool Workload Group",
        )

        def _drop(n: str = name) -> None:
            drop_workload_group(dest, n)

        def _create(g: dict[str, Any] = group) -> None:
            create_workload_group(dest, g)

        done = copy_object(
            record,
            exists=name.lower() in dest_groups,
            force=force,
            drop=_drop,
            create=_create,
            should_process=should_process,
        )
        if done is not None:
            results.append(done)
    return results


def _copy_state(
    source: SqlInstance,
    dest: SqlInstance,
    enabled: bool,
    should_process: ShouldProcess,
) -> CopyStatus | None:
    record = CopyStatus(
        source.name, dest.name, "Reconfigure Resource Governor", "Resource Governor Reconfigure",
    )
    action = "Enabling and reconfiguring Resource Governor" if enabled else "Disabling Resource Governor"
    if not should_process(dest.name, action):
        return None
    try:
        set_governor_state(dest, enabled)
    except Exception as e:
        return record.mark(Outcome.FAILED, str(e))
    return record.mark(Outcome.SUCCESSFUL, "Enabled" if enabled else "Disabled")


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def copy_resource_governor(
    source: str,
    destination: str | Sequence[str],
    *,
    source_credential: SqlCredential | None = None,
    destination_credential: SqlCredential | None = None,
    resource_pool: Sequence[str] | None = None,
    exclude_resource_pool: Sequence[str] | None = None,
    force: bool = False,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[CopyStatus]:
    """Copy Resource Governor configuration from ``source`` to each destination.

    Both instances must be SQL Server 2008 or later and the destination
    edition must support Resource Governor.
    """
    if isinstance(destination, str):
        destination = [destination]

    try:
        source_server = connect_instance(source, source_credential, min_version=SQL2008)
    except InstanceConnectionError as e:
        stop_function(
            "Failure",
            category=ErrorCategory.CONNECTION,
            target=source,
            error=e,
            enable_exception=enable_exception,
        )
        return []

    should_process = ShouldProcess(dry_run, confirm)
    results: list[CopyStatus] = []

    try:
        source_config = get_governor_configuration(source_server)

        for dest_target in destination:
            try:
                dest_server = connect_instance(
                    dest_target, destination_credential, min_version=SQL2008,
                )
            except InstanceConnectionError as e:
                stop_function(
                    "Failure",
                    category=ErrorCategory.CONNECTION,
                    target=dest_target,
                    error=e,
                    enable_exception=enable_exception,
                )
                continue

            try:
                if not supports_resource_governor(dest_server):
                    stop_function(
                        f"Resource Governor is not supported on {dest_server.edition}",
                        category=ErrorCategory.NOT_SUPPORTED,
                        target=dest_server.name,
                        enable_exception=enable_exception,
                    )
                    continue

                print_header(f"Resource Governor: {source_server.name} -> {dest_server.name}")
                print_info("Migrating classifier function")
                settings = _copy_settings(
                    source_server, dest_server, source_config, force, should_process,
                )
                if settings is not None:
                    results.append(settings)

                print_info("Migrating resource pools")
                results.extend(
                    _copy_pools(
                        source_server,
                        dest_server,
                        resource_pool=resource_pool,
                        exclude_resource_pool=exclude_resource_pool,
                        force=force,
                        should_process=should_process,
                    ),
                )

                state = _copy_state(
                    source_server,
                    dest_server,
                    bool(source_config.get("is_enabled")),
                    should_process,
                )
                if state is not None:
                    results.append(state)
            except DbaCommandError:
                raise
            except Exception as e:
                stop_function(
                    "Failure",
                    category=ErrorCategory.INVALID_OPERATION,
                    target=dest_server.name,
                    error=e,
                    enable_exception=enable_exception,
                )
            finally:
                dest_server.close()
    except DbaCommandError:
        raise
    except Exception as e:
        stop_function(
            "Failure",
            category=ErrorCategory.INVALID_OPERATION,
            target=source_server.name,
            error=e,
            enable_exception=enable_exception,
        )
    finally:
        source_server.close()

    return results
