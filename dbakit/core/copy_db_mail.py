"""Copy Database Mail configuration between instances.

Copies, in order: configuration values, accounts, mail servers and
profiles. Accounts are copied before profiles so profile-account links can
be recreated on the destination.

Usage:
    >>> from dbakit.core.copy_db_mail import copy_db_mail
    >>> results = copy_db_mail("sql01", ["sql02"], types=["Accounts"], force=True)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_header, print_info, print_success, print_warning
from dbakit.helpers.instance import SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess
from dbakit.helpers.status import (
    EXISTS_NOTE,
    CopyStatus,
    Outcome,
    ReconcileAction,
    copy_object,
    reconcile,
)

MAIL_TYPES = ("ConfigurationValues", "Accounts", "MailServers", "Profiles")

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

_CONFIGURATION_SQL = """
SELECT paramname, paramvalue, description
FROM msdb.dbo.sysmail_configuration
ORDER BY paramname
"""

_ACCOUNTS_SQL = """
SELECT a.account_id, a.name, a.description, a.email_address, a.display_name,
       a.replyto_address,
       s.servername, s.servertype, s.port, s.username, s.use_default_credentials,
       s.enable_ssl, c.credential_identity
FROM msdb.dbo.sysmail_account AS a
LEFT JOIN msdb.dbo.sysmail_server AS s ON s.account_id = a.account_id
LEFT JOIN sys.credentials AS c ON c.credential_id = s.credential_id
ORDER BY a.name
"""

_PROFILES_SQL = """
SELECT p.profile_id, p.name, p.description
FROM msdb.dbo.sysmail_profile AS p
ORDER BY p.name
"""

_PROFILE_ACCOUNTS_SQL = """
SELECT a.name AS account_name, pa.sequence_number
FROM msdb.dbo.sysmail_profileaccount AS pa
JOIN msdb.dbo.sysmail_account AS a ON a.account_id = pa.account_id
WHERE pa.profile_id = %s
ORDER BY pa.sequence_number
"""

_PROFILE_PRINCIPALS_SQL = """
SELECT CASE WHEN pp.principal_sid = 0x00 THEN 'public' ELSE dp.name END AS principal_name,
       pp.is_default
FROM msdb.dbo.sysmail_principalprofile AS pp
LEFT JOIN msdb.sys.database_principals AS dp ON dp.sid = pp.principal_sid
WHERE pp.profile_id = %s
"""

_MAIL_XPS_SQL = """
SELECT CAST(value_in_use AS int) AS value_in_use
FROM sys.configurations
WHERE name = 'Database Mail XPs'
"""


# ---------------------------------------------------------------------------
# Server access
# ---------------------------------------------------------------------------


def get_mail_configuration(server: SqlInstance) -> dict[str, str]:
    """Database Mail configuration parameters by name."""
    rows = server.query(_CONFIGURATION_SQL)
    return {str(r["paramname"]): str(r["paramvalue"] or "") for r in rows}


def set_mail_configuration(server: SqlInstance, name: str, value: str) -> None:
    server.execute(
        "EXEC msdb.dbo.sysmail_configure_sp @parameter_name = %s, @parameter_value = %s",
        (name, value),
    )


def get_mail_accounts(server: SqlInstance) -> list[dict[str, Any]]:
    """Mail accounts joined with their SMTP server settings."""
    return server.query(_ACCOUNTS_SQL)


def drop_mail_account(server: SqlInstance, name: str) -> None:
    server.execute("EXEC msdb.dbo.sysmail_delete_account_sp @account_name = %s", (name,))


def create_mail_account(server: SqlInstance, account: dict[str, Any]) -> None:
    """Create an account with the source account's SMTP settings."""
    server.execute(
        """
        EXEC msdb.dbo.sysmail_add_account_sp
            @account_name = %s,
            @email_address = %s,
            @display_name = %s,
            @replyto_address = %s,
            @description = %s,
            @mailserver_name = %s,
            @mailserver_type = %s,
            @port = %s,
            @username = %s,
            @use_default_credentials = %s,
            @enable_ssl = %s
        """,
        (
            account["name"],
            account["email_address"],
            account.get("display_name"),
            account.get("replyto_address"),
            account.get("description"),
            account.get("servername"),
            account.get("servertype") or "SMTP",
            int(account.get("port") or 25),
            account.get("username") or account.get("credential_identity"),
            int(bool(account.get("use_default_credentials"))),
            int(bool(account.get("enable_ssl"))),
        ),
    )


def update_mail_server(server: SqlInstance, account: dict[str, Any]) -> None:
    """Point the destination account at the source account's SMTP server."""
    server.execute(
        """
        EXEC msdb.dbo.sysmail_update_account_sp
            @account_name = %s,
            @mailserver_name = %s,
            @mailserver_type = %s,
            @port = %s,
            @username = %s,
            @use_default_credentials = %s,
            @enable_ssl = %s
        """,
        (
            account["name"],
            account.get("servername"),
            account.get("servertype") or "SMTP",
            int(account.get("port") or 25),
            account.get("username") or account.get("credential_identity"),
            int(bool(account.get("use_default_credentials"))),
            int(bool(account.get("enable_ssl"))),
        ),
    )


def get_mail_profiles(server: SqlInstance) -> list[dict[str, Any]]:
    """Mail profiles with their ordered accounts and principal associations."""
    profiles = server.query(_PROFILES_SQL)
    for profile in profiles:
        profile["accounts"] = server.query(_PROFILE_ACCOUNTS_SQL, (profile["profile_id"],))
        profile["principals"] = server.query(_PROFILE_PRINCIPALS_SQL, (profile["profile_id"],))
    return profiles


def drop_mail_profile(server: SqlInstance, name: str) -> None:
    server.execute("EXEC msdb.dbo.sysmail_delete_profile_sp @profile_name = %s", (name,))


def create_mail_profile(server: SqlInstance, profile: dict[str, Any]) -> None:
    """Create a profile, link its accounts in order and grant its principals."""
    server.execute(
        "EXEC msdb.dbo.sysmail_add_profile_sp @profile_name = %s, @description = %s",
        (profile["name"], profile.get("description")),
    )
    for link in profile.get("accounts", []):
        server.execute(
            """
            EXEC msdb.dbo.sysmail_add_profileaccount_sp
                @profile_name = %s, @account_name = %s, @sequence_number = %s
            """,
            (profile["name"], link["account_name"], int(link["sequence_number"])),
        )
    for principal in profile.get("principals", []):
        if not principal.get("principal_name"):
            continue
        server.execute(
            """
            EXEC msdb.dbo.sysmail_add_principalprofile_sp
                @profile_name = %s, @principal_name = %s, @is_default = %s
            """,
            (profile["name"], principal["principal_name"], int(bool(principal.get("is_default")))),
        )


def get_mail_xps_enabled(server: SqlInstance) -> bool:
    row = server.query_one(_MAIL_XPS_SQL)
    return bool(row and row.get("value_in_use"))


def enable_mail_xps(server: SqlInstance) -> None:
    server.execute(
        "EXEC sp_configure 'show advanced options', 1; RECONFIGURE; "
        + "EXEC sp_configure 'Database Mail XPs', 1; RECONFIGURE;",
    )


# ---------------------------------------------------------------------------
# Copy steps
# ---------------------------------------------------------------------------


def _copy_configuration(
    source: SqlInstance,
    dest: SqlInstance,
    should_process: ShouldProcess,
) -> CopyStatus | None:
    record = CopyStatus(source.name, dest.name, "Server Configuration", "Mail Configuration")
    source_config = get_mail_configuration(source)
    dest_config = get_mail_configuration(dest)
    changed = {
        name: value for name, value in source_config.items()
        if dest_config.get(name) != value
    }
    if not changed:
        return record.mark(Outcome.SKIPPED, "Configuration values already match")

    if not should_process(dest.name, "Migrating all mail server configuration values"):
        return None
    try:
        for name, value in changed.items():
            set_mail_configuration(dest, name, value)
    except Exception as e:
        return record.mark(Outcome.FAILED, str(e))
    return record.mark(Outcome.SUCCESSFUL, f"Updated: {', '.join(sorted(changed))}")


def _copy_accounts(
    source: SqlInstance,
    dest: SqlInstance,
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    results: list[CopyStatus] = []
    dest_names = {str(a["name"]).lower() for a in get_mail_accounts(dest)}

    for account in get_mail_accounts(source):
        name = str(account["name"])
        record = CopyStatus(source.name, dest.name, name, "Mail Account")

        def _drop(n: str = name) -> None:
            drop_mail_account(dest, n)

        def _create(a: dict[str, Any] = account) -> None:
            create_mail_account(dest, a)

        done = copy_object(
            record,
            exists=name.lower() in dest_names,
            force=force,
            drop=_drop,
            create=_create,
            should_process=should_process,
        )
        if done is None:
            continue
        if done.status is Outcome.SUCCESSFUL and (account.get("username") or account.get("credential_identity")):
            done.notes = "SMTP password is not copied; set it on the destination account"
        results.append(done)
    return results


def _copy_mail_servers(
    source: SqlInstance,
    dest: SqlInstance,
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    results: list[CopyStatus] = []
    dest_accounts = {str(a["name"]).lower(): a for a in get_mail_accounts(dest)}

    for account in get_mail_accounts(source):
        server_name = account.get("servername")
        if not server_name:
            continue
        record = CopyStatus(source.name, dest.name, str(server_name), "Mail Server")
        dest_account = dest_accounts.get(str(account["name"]).lower())
        if dest_account is None:
            results.append(
                record.mark(Outcome.FAILED, f"Account {account['name']} does not exist on destination"),
            )
            continue

        exists = str(dest_account.get("servername") or "").lower() == str(server_name).lower()
        if reconcile(exists, force) is ReconcileAction.SKIP:
            print_warning(f"Mail Server {server_name} exists on {dest.name}. Use force to migrate.")
            results.append(record.mark(Outcome.SKIPPED, EXISTS_NOTE))
            continue

        # The server is a property of its account, so replacing it is a single update.
        action = f"Updating Mail Server {server_name} on account {account['name']}"
        if not should_process(dest.name, action):
            continue
        try:
            update_mail_server(dest, account)
        except Exception as e:
            results.append(record.mark(Outcome.FAILED, str(e)))
            continue
        print_success(f"Copied Mail Server {server_name} to {dest.name}")
        results.append(record.mark(Outcome.SUCCESSFUL))
    return results


def _copy_profiles(
    source: SqlInstance,
    dest: SqlInstance,
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    results: list[CopyStatus] = []
    dest_names = {str(p["name"]).lower() for p in get_mail_profiles(dest)}

    for profile in get_mail_profiles(source):
        name = str(profile["name"])
        record = CopyStatus(source.name, dest.name, name, "Mail Profile")

        def _drop(n: str = name) -> None:
            drop_mail_profile(dest, n)

        def _create(p: dict[str, Any] = profile) -> None:
            create_mail_profile(dest, p)

        done = copy_object(
            record,
            exists=name.lower() in dest_names,
            force=force,
            drop=_drop,
            create=_create,
            should_process=should_process,
        )
        if done is not None:
            results.append(done)
    return results


def _copy_mail_xps(
    source: SqlInstance,
    dest: SqlInstance,
    should_process: ShouldProcess,
) -> CopyStatus | None:
    if not get_mail_xps_enabled(source) or get_mail_xps_enabled(dest):
        return None
    record = CopyStatus(source.name, dest.name, "Database Mail XPs", "Database Mail XPs")
    if not should_process(dest.name, "Enabling Database Mail XPs"):
        return None
    try:
        enable_mail_xps(dest)
    except Exception as e:
        return record.mark(Outcome.FAILED, str(e))
    return record.mark(Outcome.SUCCESSFUL)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def copy_db_mail(
    source: str,
    destination: str | Sequence[str],
    *,
    source_credential: SqlCredential | None = None,
    destination_credential: SqlCredential | None = None,
    types: Sequence[str] | None = None,
    force: bool = False,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[CopyStatus]:
    """Copy Database Mail objects from ``source`` to each destination.

    Args:
        source: Source instance.
        destination: Destination instances.
        types: Subset of ``MAIL_TYPES``; all when omitted.
        force: Drop and recreate objects that already exist.

    Returns:
        One status record per processed object.
    """
    if isinstance(destination, str):
        destination = [destination]
    wanted = _normalize_types(types)
    if wanted is None:
        stop_function(
            f"Invalid mail type; valid types are {', '.join(MAIL_TYPES)}",
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    try:
        source_server = connect_instance(source, source_credential, min_version=9)
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
        for dest_target in destination:
            try:
                dest_server = connect_instance(dest_target, destination_credential, min_version=9)
            except InstanceConnectionError as e:
                stop_function(
                    "Failure",
                    category=ErrorCategory.CONNECTION,
                    target=dest_target,
                    error=e,
                    enable_exception=enable_exception,
                )
                continue

            print_header(f"Database Mail: {source_server.name} -> {dest_server.name}")
            try:
                results.extend(
                    _copy_to_destination(source_server, dest_server, wanted, force, should_process),
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
    finally:
        source_server.close()

    return results


def _copy_to_destination(
    source: SqlInstance,
    dest: SqlInstance,
    wanted: list[str],
    force: bool,
    should_process: ShouldProcess,
) -> list[CopyStatus]:
    results: list[CopyStatus] = []

    if "ConfigurationValues" in wanted:
        print_info("Migrating mail server configuration values")
        record = _copy_configuration(source, dest, should_process)
        if record is not None:
            results.append(record)

    if "Accounts" in wanted:
        print_info("Migrating mail accounts")
        results.extend(_copy_accounts(source, dest, force, should_process))

    if "MailServers" in wanted:
        print_info("Migrating mail servers")
        results.extend(_copy_mail_servers(source, dest, force, should_process))

    if "Profiles" in wanted:
        print_info("Migrating mail profiles")
        results.extend(_copy_profiles(source, dest, force, should_process))

    xps = _copy_mail_xps(source, dest, should_process)
    if xps is not None:
        results.append(xps)

    return results


def _normalize_types(types: Sequence[str] | None) -> list[str] | None:
    """Canonical type names in copy order, or None if any name is unknown."""
    if not types:
        return list(MAIL_TYPES)
    by_key = {t.lower(): t for t in MAIL_TYPES}
    requested: set[str] = set()
    for t in types:
        canonical = by_key.get(t.lower())
        if canonical is None:
            return None
        requested.add(canonical)
    return [t for t in MAIL_TYPES if t in requested]
