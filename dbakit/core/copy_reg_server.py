"""Copy Central Management Server groups and registered servers.

Groups are copied depth-first from the ``DatabaseEngineServerGroup`` root so
each destination group exists before its servers and subgroups are added. A
group that is skipped on the destination takes its whole subtree with it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_header, print_verbose, print_warning
from dbakit.helpers.instance import SQL2008, SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess
from dbakit.helpers.status import CopyStatus, Outcome, copy_object

ROOT_GROUP = "DatabaseEngineServerGroup"
SELF_REGISTRATION_NOTE = "Destination instance cannot be registered in its own CMS"

_GROUPS_SQL = """
SELECT server_group_id, name, description, server_type, parent_id, is_system_object
FROM msdb.dbo.sysmanagement_shared_server_groups
WHERE server_type = 0
"""

_SERVERS_SQL = """
SELECT server_id, server_group_id, name, server_name, description, server_type
FROM msdb.dbo.sysmanagement_shared_registered_servers
WHERE server_type = 0
"""

_ADD_GROUP_SQL = """
SET NOCOUNT ON;
DECLARE @id int;
EXEC msdb.dbo.sp_sysmanagement_add_shared_server_group
    @name = %s, @description = %s, @parent_id = %s, @server_type = 0,
    @server_group_id = @id OUTPUT;
SELECT @id AS server_group_id;
"""

_ADD_SERVER_SQL = """
SET NOCOUNT ON;
DECLARE @id int;
EXEC msdb.dbo.sp_sysmanagement_add_shared_registered_server
    @name = %s, @server_group_id = %s, @server_name = %s, @description = %s,
    @server_type = 0, @server_id = @id OUTPUT;
SELECT @id AS server_id;
"""


@dataclass
class CmsGroup:
    """One CMS server group with its servers and subgroups."""

    group_id: int
    name: str
    description: str | None = None
    servers: list[dict[str, Any]] = field(default_factory=list)
    groups: list[CmsGroup] = field(default_factory=list)

    def find_group(self, name: str) -> CmsGroup | None:
        for child in self.groups:
            if child.name.lower() == name.lower():
                return child
        return None

    def find_server(self, name: str) -> dict[str, Any] | None:
        for server in self.servers:
            if str(server["name"]).lower() == name.lower():
                return server
        return None


# ---------------------------------------------------------------------------
# Server access
# ---------------------------------------------------------------------------


def get_cms_tree(server: SqlInstance) -> CmsGroup:
    """Load the database engine CMS tree rooted at ``DatabaseEngineServerGroup``."""
    group_rows = server.query(_GROUPS_SQL)
    server_rows = server.query(_SERVERS_SQL)

    groups = {
        int(row["server_group_id"]): CmsGroup(
            int(row["server_group_id"]), str(row["name"]), row.get("description"),
        )
        for row in group_rows
    }
    root: CmsGroup | None = None
    for row in sorted(group_rows, key=lambda r: str(r["name"]).lower()):
        group = groups[int(row["server_group_id"])]
        parent = groups.get(int(row["parent_id"])) if row.get("parent_id") is not None else None
        if row["name"] == ROOT_GROUP and row.get("is_system_object"):
            root = group
        elif parent is not None:
            parent.groups.append(group)

    if root is None:
        raise LookupError(f"{ROOT_GROUP} not found in msdb on {server.name}")

    for row in sorted(server_rows, key=lambda r: str(r["name"]).lower()):
        owner = groups.get(int(row["server_group_id"]))
        if owner is not None:
            owner.servers.append(row)
    return root


def add_group(server: SqlInstance, name: str, description: str | None, parent_id: int) -> int:
    """Create a group and return its new id."""
    row = server.query_one(_ADD_GROUP_SQL, (name, description or "", parent_id))
    if row is None or row.get("server_group_id") is None:
        raise RuntimeError(f"Group {name} was not created")
    return int(row["server_group_id"])


def drop_group(server: SqlInstance, group_id: int) -> None:
    server.execute(
        "EXEC msdb.dbo.sp_sysmanagement_delete_shared_server_group @server_group_id = %s",
        (group_id,),
    )


def add_server(
    server: SqlInstance,
    group_id: int,
    name: str,
    server_name: str,
    description: str | None,
) -> None:
    server.query(_ADD_SERVER_SQL, (name, group_id, server_name, description or ""))


def drop_server(server: SqlInstance, server_id: int) -> None:
    server.execute(
        "EXEC msdb.dbo.sp_sysmanagement_delete_shared_registered_server @server_id = %s",
        (server_id,),
    )


# ---------------------------------------------------------------------------
# Copy steps
# ---------------------------------------------------------------------------


class _Copier:
    """Walks one source tree into one destination CMS."""

    def __init__(
        self,
        source: SqlInstance,
        dest: SqlInstance,
        *,
        force: bool,
        switch_server_name: bool,
        should_process: ShouldProcess,
    ) -> None:
        self.source = source
        self.dest = dest
        self.force = force
        self.switch_server_name = switch_server_name
        self.should_process = should_process
        self.results: list[CopyStatus] = []

    def _record(self, name: str, type_: str) -> CopyStatus:
        return CopyStatus(self.source.name, self.dest.name, name, type_)

    def copy_servers(self, source_group: CmsGroup, dest_group: CmsGroup) -> None:
        for reg in source_group.servers:
            name = str(reg["name"])
            server_name = str(reg["server_name"])
            record = self._record(name, "CMS Instance")

            if server_name.lower() == self.dest.name.lower():
                if not self.switch_server_name:
                    print_warning(f"{server_name} is the destination CMS; skipping")
                    self.results.append(record.mark(Outcome.SKIPPED, SELF_REGISTRATION_NOTE))
                    continue
                server_name = self.source.name
                if name.lower() == self.dest.name.lower():
                    name = self.source.name
                    record.name = name

            existing = dest_group.find_server(name)

            def _drop(r: dict[str, Any] | None = existing) -> None:
                if r is not None:
                    drop_server(self.dest, int(r["server_id"]))

            def _create(
                n: str = name, sn: str = server_name, d: str | None = reg.get("description"),
            ) -> None:
                add_server(self.dest, dest_group.group_id, n, sn, d)

            done = copy_object(
                record,
                exists=existing is not None,
                force=self.force,
                drop=_drop,
                create=_create,
                should_process=self.should_process,
            )
            if done is not None:
                self.results.append(done)

    def copy_group(self, source_group: CmsGroup, dest_parent: CmsGroup) -> None:
        record = self._record(source_group.name, "CMS Group")
        existing = dest_parent.find_group(source_group.name)
        created: list[CmsGroup] = []

        def _drop() -> None:
            if existing is not None:
                drop_group(self.dest, existing.group_id)

        def _create() -> None:
            new_id = add_group(
                self.dest, source_group.name, source_group.description, dest_parent.group_id,
            )
            created.append(CmsGroup(new_id, source_group.name, source_group.description))

        done = copy_object(
            record,
            exists=existing is not None,
            force=self.force,
            drop=_drop,
            create=_create,
            should_process=self.should_process,
        )
        if done is None or done.status is not Outcome.SUCCESSFUL:
            if done is not None:
                self.results.append(done)
            print_verbose(f"Not descending into group {source_group.name}")
            return
        self.results.append(done)

        dest_group = created[0]
        self.copy_servers(source_group, dest_group)
        for child in source_group.groups:
            self.copy_group(child, dest_group)


def copy_reg_server(
    source: str,
    destination: str | Sequence[str],
    *,
    source_credential: SqlCredential | None = None,
    destination_credential: SqlCredential | None = None,
    group: Sequence[str] | None = None,
    switch_server_name: bool = False,
    force: bool = False,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[CopyStatus]:
    """Copy CMS groups and registered servers from ``source`` to each destination.

    Args:
        group: Only copy these top-level groups (servers in the root group
            are copied only when no filter is given).
        switch_server_name: Register the source instance name in place of
            servers whose name is the destination CMS itself.
        force: Drop and recreate groups and servers that already exist.
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
        source_tree = get_cms_tree(source_server)
        wanted = {g.lower() for g in group} if group else None

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

            print_header(f"Central Management Server: {source_server.name} -> {dest_server.name}")
            copier = _Copier(
                source_server,
                dest_server,
                force=force,
                switch_server_name=switch_server_name,
                should_process=should_process,
            )
            try:
                dest_tree = get_cms_tree(dest_server)
                if wanted is None:
                    copier.copy_servers(source_tree, dest_tree)
                for child in source_tree.groups:
                    if wanted is None or child.name.lower() in wanted:
                        copier.copy_group(child, dest_tree)
            except LookupError as e:
                stop_function(
                    str(e),
                    category=ErrorCategory.OBJECT_NOT_FOUND,
                    target=dest_target,
                    enable_exception=enable_exception,
                )
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
            results.extend(copier.results)
    except LookupError as e:
        stop_function(
            str(e),
            category=ErrorCategory.OBJECT_NOT_FOUND,
            target=source,
            enable_exception=enable_exception,
        )
    except DbaCommandError:
        raise
    except Exception as e:
        stop_function(
            "Failure",
            category=ErrorCategory.INVALID_OPERATION,
            target=source,
            error=e,
            enable_exception=enable_exception,
        )
    finally:
        source_server.close()

    return results
