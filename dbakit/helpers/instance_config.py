"""Named instance configuration (instances.yaml) and credential resolution.

Example ``instances.yaml``::

    defaults:
      login_timeout: 15
      database: master
    instances:
      prod01:
        server: sql01.example.com\\PROD
        port: 1433
        user: ${MSSQL_PROD01_USER}
        password: ${MSSQL_PROD01_PASSWORD}

Lookup order for the file: ``$DBAKIT_CONFIG``, then ``instances.yaml`` in
the current directory or any parent.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from dbakit.helpers.errors import ConfigError
from dbakit.helpers.yaml_loader import load_yaml_file

CONFIG_FILE_NAME = "instances.yaml"
DEFAULT_LOGIN_TIMEOUT = 15
DEFAULT_DATABASE = "master"


@dataclass
class SqlCredential:
    """SQL authentication credential. ``user=None`` means integrated auth."""

    user: str | None = None
    password: str | None = None

    def __repr__(self) -> str:
        return f"SqlCredential(user={self.user!r}, password=***)"


@dataclass
class InstanceAddress:
    """Parsed ``host[\\instance][,port]`` address."""

    host: str
    instance_name: str | None = None
    port: int | None = None

    @property
    def server(self) -> str:
        """Server string as the driver expects it."""
        if self.instance_name:
            return f"{self.host}\\{self.instance_name}"
        return self.host


@dataclass
class ConnectionSettings:
    """Everything needed to open a connection to one instance."""

    target: str
    address: InstanceAddress
    credential: SqlCredential = field(default_factory=SqlCredential)
    database: str = DEFAULT_DATABASE
    login_timeout: int = DEFAULT_LOGIN_TIMEOUT


@dataclass
class InstanceConfig:
    """Parsed instances.yaml."""

    instances: dict[str, dict[str, Any]] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None


def parse_instance_address(text: str) -> InstanceAddress:
    """Parse a SQL Server address.

    Accepts ``host``, ``host\\INST``, ``host,1433``, ``host:1433`` and
    ``host\\INST,1433``.

    Raises:
        ValueError: If the address is empty or the port is not a number.
    """
    value = text.strip()
    if not value:
        raise ValueError("Instance address is empty")

    port: int | None = None
    if "," in value:
        value, port_text = value.rsplit(",", 1)
        port = _parse_port(port_text, text)
    elif ":" in value and "\\" not in value:
        value, port_text = value.rsplit(":", 1)
        port = _parse_port(port_text, text)

    instance_name: str | None = None
    if "\\" in value:
        value, instance_name = value.split("\\", 1)
        if instance_name.upper() == "MSSQLSERVER" or not instance_name:
            instance_name = None

    if not value:
        raise ValueError(f"Instance address has no host: {text!r}")

    return InstanceAddress(host=value, instance_name=instance_name, port=port)


def _parse_port(port_text: str, original: str) -> int:
    port_text = port_text.strip()
    if not port_text.isdigit():
        raise ValueError(f"Invalid port in instance address: {original!r}")
    return int(port_text)


def find_config_file(start: Path | None = None) -> Path | None:
    """Locate instances.yaml via ``$DBAKIT_CONFIG`` or by walking up from ``start``."""
    env_path = os.getenv("DBAKIT_CONFIG")
    if env_path:
        return Path(env_path)

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def _resolve_value(raw: object, missing: list[str]) -> str:
    """Expand a ``${VAR}`` reference, recording unset variables."""
    value = str(raw if raw is not None else "").strip()
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        resolved = os.getenv(env_var, "").strip()
        if not resolved:
            missing.append(env_var)
        return resolved
    return value


def load_instance_config(path: Path | None = None) -> InstanceConfig:
    """Load instances.yaml. A missing file yields an empty config.

    Raises:
        ConfigError: If the file is not a mapping or sections have wrong types.
    """
    config_path = path if path is not None else find_config_file()
    if config_path is None or not config_path.exists():
        return InstanceConfig()

    try:
        raw = load_yaml_file(config_path)
    except TypeError as e:
        raise ConfigError(str(e)) from e

    instances = raw.get("instances") or {}
    defaults = raw.get("defaults") or {}
    if not isinstance(instances, dict):
        raise ConfigError(f"'instances' must be a mapping in {config_path}")
    if not isinstance(defaults, dict):
        raise ConfigError(f"'defaults' must be a mapping in {config_path}")

    return InstanceConfig(
        instances={
            str(name): dict(cast(dict[str, Any], entry) or {})
            for name, entry in instances.items()
        },
        defaults=dict(defaults),
        path=config_path,
    )


def _env_credential(alias: str | None) -> SqlCredential | None:
    """Credential from ``MSSQL_<ALIAS>_USER`` or generic ``MSSQL_USER``."""
    if alias:
        prefix = "MSSQL_" + alias.upper().replace("-", "_").replace(".", "_")
        user = os.getenv(f"{prefix}_USER")
        if user:
            return SqlCredential(user, os.getenv(f"{prefix}_PASSWORD", ""))

    user = os.getenv("MSSQL_USER")
    if user:
        return SqlCredential(user, os.getenv("MSSQL_PASSWORD", ""))
    return None


def _login_timeout(defaults: dict[str, Any], entry: dict[str, Any]) -> int:
    raw = entry.get("login_timeout") or defaults.get("login_timeout")
    if raw is None:
        raw = os.getenv("DBAKIT_LOGIN_TIMEOUT", str(DEFAULT_LOGIN_TIMEOUT))
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"login_timeout must be an integer, got {raw!r}") from e


def resolve_connection(
    target: str,
    credential: SqlCredential | None = None,
    config: InstanceConfig | None = None,
) -> ConnectionSettings:
    """Resolve a target (alias or address) into connection settings.

    Credential precedence: explicit ``credential``, the alias entry in
    instances.yaml, ``MSSQL_<ALIAS>_USER``/``_PASSWORD``, then
    ``MSSQL_USER``/``MSSQL_PASSWORD``. With none of those the driver falls
    back to integrated authentication.

    Raises:
        ConfigError: If an alias references unset environment variables.
        ValueError: If ``target`` is not a valid address.
    """
    cfg = config if config is not None else load_instance_config()
    entry = cfg.instances.get(target)

    if entry is None:
        return ConnectionSettings(
            target=target,
            address=parse_instance_address(target),
            credential=credential or _env_credential(None) or SqlCredential(),
            database=str(cfg.defaults.get("database") or DEFAULT_DATABASE),
            login_timeout=_login_timeout(cfg.defaults, {}),
        )

    missing: list[str] = []
    server = _resolve_value(entry.get("server", target), missing)
    port_raw = _resolve_value(entry.get("port"), missing)
    user = _resolve_value(entry.get("user"), missing)
    password = _resolve_value(entry.get("password"), missing)

    if missing and credential is None:
        raise ConfigError(
            f"Missing environment variables for instance '{target}': "
            + ", ".join(sorted(set(missing))),
        )

    address = parse_instance_address(server)
    if port_raw:
        if not port_raw.isdigit():
            raise ConfigError(f"Invalid port for instance '{target}': {port_raw}")
        address.port = int(port_raw)

    if credential is None:
        credential = (
            SqlCredential(user, password) if user else _env_credential(target)
        ) or SqlCredential()

    return ConnectionSettings(
        target=target,
        address=address,
        credential=credential,
        database=str(
            entry.get("database") or cfg.defaults.get("database") or DEFAULT_DATABASE
        ),
        login_timeout=_login_timeout(cfg.defaults, entry),
    )
