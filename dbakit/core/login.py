"""Change SQL Server login properties.

Every requested change is a separate gated step. A failed step is reported,
noted on the login's result and the remaining steps still run.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from dbakit.helpers.errors import DbaCommandError, ErrorCategory, InstanceConnectionError, stop_function
from dbakit.helpers.helpers_logging import print_success
from dbakit.helpers.instance import SQL2012, SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.should_process import ConfirmCallback, ShouldProcess
from dbakit.helpers.tsql import quote_name

FIXED_SERVER_ROLES = (
    "bulkadmin",
    "dbcreator",
    "diskadmin",
    "processadmin",
    "securityadmin",
    "serveradmin",
    "setupadmin",
    "sysadmin",
)

_LOGIN_SQL = """
SELECT p.name, p.type_desc, p.is_disabled, p.default_database_name,
       p.create_date, p.modify_date,
       sl.is_policy_checked, sl.is_expiration_checked,
       CAST(LOGINPROPERTY(p.name, 'IsLocked') AS int) AS is_locked,
       CAST(LOGINPROPERTY(p.name, 'IsMustChange') AS int) AS must_change,
       CASE WHEN EXISTS (
           SELECT 1 FROM sys.server_permissions AS sp
           WHERE sp.grantee_principal_id = p.principal_id
             AND sp.permission_name = 'CONNECT SQL' AND sp.state = 'D'
       ) THEN 1 ELSE 0 END AS deny_login
FROM sys.server_principals AS p
LEFT JOIN sys.sql_logins AS sl ON sl.principal_id = p.principal_id
WHERE p.name = %s AND p.type IN ('S', 'U', 'G')
"""

_ROLES_SQL = """
SELECT r.name
FROM sys.server_role_members AS m
JOIN sys.server_principals AS r ON r.principal_id = m.role_principal_id
JOIN sys.server_principals AS l ON l.principal_id = m.member_principal_id
WHERE l.name = %s
ORDER BY r.name
"""

# The password travels as a driver parameter so it never appears in the batch text.
_PASSWORD_SQL = """
DECLARE @sql nvarchar(max) =
    N'ALTER LOGIN ' + QUOTENAME(%s) + N' WITH PASSWORD = ' + QUOTENAME(%s, '''') + %s;
EXEC (@sql);
"""


class LoginValidationError(ValueError):
    """Raised when login arguments contradict each other."""


@dataclass
class LoginResult:
    """Login properties after the changes were applied."""

    computer_name: str
    instance_name: str
    sql_instance: str
    login: str
    login_type: str | None = None
    is_disabled: bool | None = None
    is_locked: bool | None = None
    must_change: bool | None = None
    password_policy_enforced: bool | None = None
    password_expiration_enabled: bool | None = None
    deny_login: bool | None = None
    default_database: str | None = None
    server_roles: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "SqlInstance": self.sql_instance,
            "Login": self.login,
            "LoginType": self.login_type,
            "IsDisabled": self.is_disabled,
            "IsLocked": self.is_locked,
            "MustChangePassword": self.must_change,
            "PasswordPolicyEnforced": self.password_policy_enforced,
            "PasswordExpirationEnabled": self.password_expiration_enabled,
            "DenyLogin": self.deny_login,
            "DefaultDatabase": self.default_database,
            "ServerRole": self.server_roles,
            "Notes": "; ".join(self.notes) or None,
        }


@dataclass
class LoginChanges:
    """Validated set of changes applied to each login."""

    password: str | None = None
    unlock: bool = False
    must_change: bool = False
    new_name: str | None = None
    enable: bool = False
    disable: bool = False
    deny_login: bool = False
    grant_login: bool = False
    password_policy_enforced: bool | None = None
    password_expiration_enabled: bool | None = None
    add_role: tuple[str, ...] = ()
    remove_role: tuple[str, ...] = ()
    default_database: str | None = None


def _validate_roles(roles: Sequence[str] | None) -> tuple[str, ...]:
    if not roles:
        return ()
    invalid = [r for r in roles if r.lower() not in FIXED_SERVER_ROLES]
    if invalid:
        raise LoginValidationError(
            f"Invalid server role(s): {', '.join(invalid)}. "
            + f"Valid roles are {', '.join(FIXED_SERVER_ROLES)}",
        )
    return tuple(r.lower() for r in roles)


def build_login_changes(
    login: Sequence[str],
    *,
    password: str | None = None,
    unlock: bool = False,
    must_change: bool = False,
    new_name: str | None = None,
    enable: bool = False,
    disable: bool = False,
    deny_login: bool = False,
    grant_login: bool = False,
    password_policy_enforced: bool | None = None,
    password_expiration_enabled: bool | None = None,
    add_role: Sequence[str] | None = None,
    remove_role: Sequence[str] | None = None,
    default_database: str | None = None,
) -> LoginChanges:
    """Check argument combinations and return the change set.

    Raises:
        LoginValidationError: On the first invalid combination.
    """
    if enable and disable:
        raise LoginValidationError("You cannot enable and disable a login at the same time")
    if deny_login and grant_login:
        raise LoginValidationError("You cannot deny and grant login at the same time")
    if new_name and len(login) > 1:
        raise LoginValidationError("You cannot rename multiple logins to the same name")
    if unlock and not password:
        raise LoginValidationError("A password is required to unlock a login")
    if must_change:
        if not password:
            raise LoginValidationError("A password is required to force a password change")
        if password_policy_enforced is False or password_expiration_enabled is False:
            raise LoginValidationError(
                "must_change requires password policy and expiration to stay enabled",
            )
    if password_expiration_enabled and password_policy_enforced is False:
        raise LoginValidationError(
            "Password expiration cannot be enabled while the password policy is disabled",
        )

    return LoginChanges(
        password=password,
        unlock=unlock,
        must_change=must_change,
        new_name=new_name,
        enable=enable,
        disable=disable,
        deny_login=deny_login,
        grant_login=grant_login,
        password_policy_enforced=password_policy_enforced,
        password_expiration_enabled=password_expiration_enabled,
        add_role=_validate_roles(add_role),
        remove_role=_validate_roles(remove_role),
        default_database=default_database,
    )


# ---------------------------------------------------------------------------
# Server access
# ---------------------------------------------------------------------------


def get_login(server: SqlInstance, name: str) -> dict[str, Any] | None:
    return server.query_one(_LOGIN_SQL, (name,))


def get_login_roles(server: SqlInstance, name: str) -> list[str]:
    return [str(r["name"]) for r in server.query(_ROLES_SQL, (name,))]


def database_exists(server: SqlInstance, name: str) -> bool:
    return server.query_one("SELECT 1 AS found FROM sys.databases WHERE name = %s", (name,)) is not None


def rename_login(server: SqlInstance, name: str, new_name: str) -> None:
    server.execute(f"ALTER LOGIN {quote_name(name)} WITH NAME = {quote_name(new_name)};")


def set_login_password(
    server: SqlInstance,
    name: str,
    password: str,
    *,
    must_change: bool = False,
    unlock: bool = False,
) -> None:
    flags = [flag for flag, wanted in (("MUST_CHANGE", must_change), ("UNLOCK", unlock)) if wanted]
    suffix = "".join(f" {flag}" for flag in flags)
    if must_change:
        suffix += ", CHECK_POLICY = ON, CHECK_EXPIRATION = ON"
    server.execute(_PASSWORD_SQL, (name, password, suffix))


def set_login_option(server: SqlInstance, name: str, option: str, value: bool) -> None:
    server.execute(f"ALTER LOGIN {quote_name(name)} WITH {option} = {'ON' if value else 'OFF'};")


def set_login_enabled(server: SqlInstance, name: str, enabled: bool) -> None:
    server.execute(f"ALTER LOGIN {quote_name(name)} {'ENABLE' if enabled else 'DISABLE'};")


def set_connect_permission(server: SqlInstance, name: str, grant: bool) -> None:
    verb = "GRANT" if grant else "DENY"
    server.execute(f"{verb} CONNECT SQL TO {quote_name(name)};")


def set_default_database(server: SqlInstance, name: str, database: str) -> None:
    server.execute(f"ALTER LOGIN {quote_name(name)} WITH DEFAULT_DATABASE = {quote_name(database)};")


def change_role_membership(server: SqlInstance, name: str, role: str, add: bool) -> None:
    if server.version_major >= SQL2012:
        verb = "ADD" if add else "DROP"
        server.execute(f"ALTER SERVER ROLE {quote_name(role)} {verb} MEMBER {quote_name(name)};")
        return
    procedure = "sp_addsrvrolemember" if add else "sp_dropsrvrolemember"
    server.execute(f"EXEC {procedure} @loginame = %s, @rolename = %s", (name, role))


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def _option_steps(changes: LoginChanges) -> list[tuple[str, bool]]:
    """CHECK_EXPIRATION/CHECK_POLICY changes in an order SQL Server accepts."""
    steps: list[tuple[str, bool]] = []
    if changes.password_expiration_enabled is False:
        steps.append(("CHECK_EXPIRATION", False))
    if changes.password_policy_enforced is False:
        steps.append(("CHECK_POLICY", False))
    if changes.password_policy_enforced:
        steps.append(("CHECK_POLICY", True))
    if changes.password_expiration_enabled:
        steps.append(("CHECK_EXPIRATION", True))
    return steps


class _LoginUpdater:
    """Runs the gated steps for one login on one instance."""

    def __init__(
        self,
        server: SqlInstance,
        name: str,
        should_process: ShouldProcess,
        enable_exception: bool,
    ) -> None:
        self.server = server
        self.name = name
        self.should_process = should_process
        self.enable_exception = enable_exception
        self.notes: list[str] = []

    def step(self, action: str, func: Callable[[], None]) -> bool:
        if not self.should_process(self.server.name, f"{action} for login {self.name}"):
            return False
        try:
            func()
        except Exception as e:
            self.notes.append(f"{action} failed: {e}")
            stop_function(
                f"{action} failed for login {self.name}",
                category=ErrorCategory.INVALID_OPERATION,
                target=self.server.name,
                error=e,
                enable_exception=self.enable_exception,
            )
            return False
        print_success(f"{action} for login {self.name}")
        return True

    def fail(self, message: str, category: ErrorCategory) -> None:
        self.notes.append(message)
        stop_function(
            message,
            category=category,
            target=self.server.name,
            enable_exception=self.enable_exception,
        )

    def apply(self, changes: LoginChanges, login_type: str) -> None:
        server = self.server

        if changes.new_name:
            new_name = changes.new_name
            if get_login(server, new_name) is not None:
                self.fail(f"Login {new_name} already exists", ErrorCategory.INVALID_OPERATION)
            elif self.step(
                f"Renaming to {new_name}", lambda: rename_login(server, self.name, new_name),
            ):
                self.name = new_name

        is_sql_login = login_type == "SQL_LOGIN"
        for option, value in _option_steps(changes):
            if not is_sql_login:
                self.fail(f"{option} only applies to SQL logins", ErrorCategory.INVALID_OPERATION)
                break
            self.step(
                f"Setting {option} {'ON' if value else 'OFF'}",
                lambda o=option, v=value: set_login_option(server, self.name, o, v),
            )

        if changes.password is not None:
            password = changes.password
            if not is_sql_login:
                self.fail("Passwords can only be set on SQL logins", ErrorCategory.INVALID_OPERATION)
            else:
                self.step(
                    "Changing password",
                    lambda: set_login_password(
                        server, self.name, password,
                        must_change=changes.must_change, unlock=changes.unlock,
                    ),
                )

        if changes.enable or changes.disable:
            enabled = changes.enable
            self.step(
                "Enabling" if enabled else "Disabling",
                lambda: set_login_enabled(server, self.name, enabled),
            )

        if changes.deny_login or changes.grant_login:
            grant = changes.grant_login
            self.step(
                "Granting connect" if grant else "Denying connect",
                lambda: set_connect_permission(server, self.name, grant),
            )

        if changes.default_database:
            database = changes.default_database
            if not database_exists(server, database):
                self.fail(f"Database {database} does not exist", ErrorCategory.OBJECT_NOT_FOUND)
            else:
                self.step(
                    f"Setting default database to {database}",
                    lambda: set_default_database(server, self.name, database),
                )

        for role in changes.add_role:
            self.step(
                f"Adding to server role {role}",
                lambda r=role: change_role_membership(server, self.name, r, True),
            )
        for role in changes.remove_role:
            self.step(
                f"Removing from server role {role}",
                lambda r=role: change_role_membership(server, self.name, r, False),
            )


def _read_result(server: SqlInstance, name: str, notes: list[str]) -> LoginResult:
    row = get_login(server, name) or {}
    return LoginResult(
        computer_name=server.computer_name,
        instance_name=server.instance_name,
        sql_instance=server.name,
        login=name,
        login_type=row.get("type_desc"),
        is_disabled=_flag(row.get("is_disabled")),
        is_locked=_flag(row.get("is_locked")),
        must_change=_flag(row.get("must_change")),
        password_policy_enforced=_flag(row.get("is_policy_checked")),
        password_expiration_enabled=_flag(row.get("is_expiration_checked")),
        deny_login=_flag(row.get("deny_login")),
        default_database=row.get("default_database_name"),
        server_roles=get_login_roles(server, name),
        notes=notes,
    )


def _flag(value: object) -> bool | None:
    return None if value is None else bool(value)


def set_login(
    sql_instance: Sequence[str],
    *,
    login: Sequence[str],
    credential: SqlCredential | None = None,
    password: str | None = None,
    unlock: bool = False,
    must_change: bool = False,
    new_name: str | None = None,
    enable: bool = False,
    disable: bool = False,
    deny_login: bool = False,
    grant_login: bool = False,
    password_policy_enforced: bool | None = None,
    password_expiration_enabled: bool | None = None,
    add_role: Sequence[str] | None = None,
    remove_role: Sequence[str] | None = None,
    default_database: str | None = None,
    dry_run: bool = False,
    confirm: ConfirmCallback | None = None,
    enable_exception: bool = False,
) -> list[LoginResult]:
    """Apply the requested changes to each login on each instance.

    Returns:
        One result per existing login, re-read after the changes.
    """
    try:
        changes = build_login_changes(
            login,
            password=password,
            unlock=unlock,
            must_change=must_change,
            new_name=new_name,
            enable=enable,
            disable=disable,
            deny_login=deny_login,
            grant_login=grant_login,
            password_policy_enforced=password_policy_enforced,
            password_expiration_enabled=password_expiration_enabled,
            add_role=add_role,
            remove_role=remove_role,
            default_database=default_database,
        )
    except LoginValidationError as e:
        stop_function(
            str(e),
            category=ErrorCategory.INVALID_ARGUMENT,
            enable_exception=enable_exception,
        )
        return []

    should_process = ShouldProcess(dry_run, confirm)
    results: list[LoginResult] = []

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
            for name in login:
                row = get_login(server, name)
                if row is None:
                    stop_function(
                        f"Login {name} not found on {server.name}",
                        category=ErrorCategory.OBJECT_NOT_FOUND,
                        target=server.name,
                        enable_exception=enable_exception,
                    )
                    continue

                updater = _LoginUpdater(server, name, should_process, enable_exception)
                updater.apply(changes, str(row.get("type_desc") or ""))
                results.append(_read_result(server, updater.name, updater.notes))
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
