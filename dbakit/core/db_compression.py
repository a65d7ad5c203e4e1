"""Apply row or page data compression to heaps and indexes.

Every heap or index partition whose current compression differs from the
requested type is rebuilt. Partitioned objects are rebuilt one partition at
a time; everything else with ``PARTITION = ALL``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_header, print_success, print_warning
from dbakit.helpers.instance import SQL2008, SQL2016, SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess
from dbakit.helpers.tsql import quote_name

COMPRESSION_TYPES = {"row": "ROW", "page": "PAGE", "none": "NONE"}
PRE_2016_EDITIONS = ("Enterprise", "Developer")

_DATABASES_SQL = """
SELECT name
FROM sys.databases
WHERE database_id > 4 AND state_desc = 'ONLINE' AND is_read_only = 0
ORDER BY name
"""

_PARTITIONS_SQL = """
SELECT s.name AS schema_name, t.name AS table_name, i.name AS index_name,
       i.index_id, i.type_desc AS index_type, p.partition_number,
       p.data_compression_desc,
       COUNT(*) OVER (PARTITION BY p.object_id, p.index_id) AS partition_count
FROM sys.partitions AS p
JOIN sys.tables AS t ON t.object_id = p.object_id
JOIN sys.schemas AS s ON s.schema_id = t.schema_id
JOIN sys.indexes AS i ON i.object_id = p.object_id AND i.index_id = p.index_id
WHERE t.is_ms_shipped = 0 AND i.type IN (0, 1, 2)
ORDER BY s.name, t.name, i.index_id, p.partition_number
"""


@dataclass
class CompressionResult:
    """One heap or index (partition) rebuilt with new compression."""

    computer_name: str
    instance_name: str
    sql_instance: str
    database: str
    schema: str
    table_name: str
    index_name: str | None
    partition: int | None
    index_type: str
    previous_compression: str
    compression_type: str
    status: str = "Successful"
    notes: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "SqlInstance": self.sql_instance,
            "Database": self.database,
            "Schema": self.schema,
            "TableName": self.table_name,
            "IndexName": self.index_name,
            "Partition": self.partition if self.partition is not None else "ALL",
            "IndexType": self.index_type,
            "PreviousCompression": self.previous_compression,
            "CompressionTypeApplied": self.compression_type,
            "Status": self.status,
            "Notes": self.notes,
        }


@dataclass(frozen=True)
class RebuildTarget:
    """A heap or index with the partition to rebuild (None for all)."""

    schema: str
    table_name: str
    index_name: str | None
    index_type: str
    partition: int | None
    current: str

    @property
    def is_heap(self) -> bool:
        return self.index_name is None or self.index_type == "HEAP"


def parse_compression_type(value: str) -> str:
    try:
        return COMPRESSION_TYPES[value.lower()]
    except KeyError as e:
        raise ValueError(
            f"Invalid compression type '{value}'; use Row, Page or None",
        ) from e


def script_rebuild(target: RebuildTarget, compression: str) -> str:
    """``ALTER TABLE/INDEX ... REBUILD`` for one rebuild target."""
    table = f"{quote_name(target.schema)}.{quote_name(target.table_name)}"
    partition = "ALL" if target.partition is None else str(target.partition)
    options = f"REBUILD PARTITION = {partition} WITH (DATA_COMPRESSION = {compression})"
    if target.is_heap:
        return f"ALTER TABLE {table} {options};"
    return f"ALTER INDEX {quote_name(str(target.index_name))} ON {table} {options};"


def plan_rebuilds(
    partitions: Sequence[dict[str, Any]],
    compression: str,
    tables: Sequence[str] | None = None,
) -> list[RebuildTarget]:
    """Pick the partitions that need a rebuild.

    ``tables`` matches ``table`` or ``schema.table`` names, case-insensitive.
    """
    wanted = {t.lower() for t in tables} if tables else None
    targets: list[RebuildTarget] = []
    seen: set[tuple[str, str, int]] = set()

    for row in partitions:
        schema = str(row["schema_name"])
        table = str(row["table_name"])
        if wanted is not None and table.lower() not in wanted and f"{schema}.{table}".lower() not in wanted:
            continue
        current = str(row.get("data_compression_desc") or "NONE").upper()
        if current == compression:
            continue

        partitioned = int(row.get("partition_count") or 1) > 1
        index_id = int(row["index_id"])
        if not partitioned:
            key = (schema, table, index_id)
            if key in seen:
                continue
            seen.add(key)

        targets.append(
            RebuildTarget(
                schema=schema,
                table_name=table,
                index_name=row.get("index_name"),
                index_type=str(row.get("index_type") or ""),
                partition=int(row["partition_number"]) if partitioned else None,
                current=current,
            ),
        )
    return targets


def get_user_databases(server: SqlInstance) -> list[str]:
    return [str(r["name"]) for r in server.query(_DATABASES_SQL)]


def get_partitions(server: SqlInstance, database: str) -> list[dict[str, Any]]:
    return server.query(_PARTITIONS_SQL, database=database)


def rebuild(server: SqlInstance, database: str, target: RebuildTarget, compression: str) -> None:
    server.execute(script_rebuild(target, compression), database=database)


def supports_compression(server: SqlInstance) -> bool:
    if server.version_major >= SQL2016:
        return True
    return any(e.lower() in server.edition.lower() for e in PRE_2016_EDITIONS)


class _Deadline:
    def __init__(self, minutes: int, clock: Callable[[], float]) -> None:
        self.limit = minutes * 60
        self.clock = clock
        self.started = clock()

    def expired(self) -> bool:
        return self.limit > 0 and self.clock() - self.started >= self.limit


def set_db_compression(
    sql_instance: Sequence[str],
    *,
    credential: SqlCredential | None = None,
    database: Sequence[str] | None = None,
    exclude_database: Sequence[str] | None = None,
    table: Sequence[str] | None = None,
    compression_type: str = "Page",
    max_run_time: int = 0,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
    clock: Callable[[], float] = time.monotonic,
) -> list[CompressionResult]:
    """Rebuild heaps and indexes with ``compression_type`` compression.

    Args:
        max_run_time: Minutes after which no new rebuild is started (0 means
            no limit). A rebuild already running is not interrupted.
        clock: Seconds source used for ``max_run_time``.
    """
    try:
        compression = parse_compression_type(compression_type)
        if max_run_time < 0:
            raise ValueError("max_run_time cannot be negative")
    except ValueError as e:
        stop_function(
            str(e),
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    include = {d.lower() for d in database} if database else None
    exclude = {d.lower() for d in exclude_database or ()}
    should_process = ShouldProcess(dry_run, confirm)
    deadline = _Deadline(max_run_time, clock)
    results: list[CompressionResult] = []

    for instance in sql_instance:
        try:
            server = connect_instance(instance, credential, min_version=SQL2008)
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
            if not supports_compression(server):
                stop_function(
                    f"Data compression is not supported on {server.edition} before SQL Server 2016",
                    category=ErrorCategory.NOT_SUPPORTED,
                    target=server.name,
                    enable_exception=enable_exception,
                )
                continue

            for db in get_user_databases(server):
                if db.lower() in exclude or (include is not None and db.lower() not in include):
                    continue
                if deadline.expired():
                    break
                print_header(f"{server.name}: {db}")
                results.extend(
                    _compress_database(
                        server, db, compression, table, deadline,
                        should_process, enable_exception,
                    ),
                )
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

        if deadline.expired():
            print_warning(f"Reached max run time of {max_run_time} minutes; stopping")
            break

    return results


def _compress_database(
    server: SqlInstance,
    database: str,
    compression: str,
    tables: Sequence[str] | None,
    deadline: _Deadline,
    should_process: ShouldProcess,
    enable_exception: bool,
) -> list[CompressionResult]:
    results: list[CompressionResult] = []
    for target in plan_rebuilds(get_partitions(server, database), compression, tables):
        if deadline.expired():
            break
        label = f"{target.schema}.{target.table_name}"
        if target.index_name:
            label += f" ({target.index_name})"
        if target.partition is not None:
            label += f" partition {target.partition}"
        if not should_process(server.name, f"Applying {compression} compression to {database}.{label}"):
            continue

        result = CompressionResult(
            computer_name=server.computer_name,
            instance_name=server.instance_name,
            sql_instance=server.name,
            database=database,
            schema=target.schema,
            table_name=target.table_name,
            index_name=target.index_name,
            partition=target.partition,
            index_type=target.index_type,
            previous_compression=target.current,
            compression_type=compression,
        )
        try:
            rebuild(server, database, target, compression)
        except Exception as e:
            stop_function(
                f"Compression failed for {database}.{label}",
                category=ErrorCategory.INVALID_OPERATION,
                target=server.name,
                error=e,
                enable_exception=enable_exception,
            )
            result.status = "Failed"
            result.notes = str(e)
        else:
            print_success(f"Compressed {database}.{label} ({compression})")
        results.append(result)
    return results
