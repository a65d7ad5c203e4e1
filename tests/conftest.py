"""Shared fixtures and helpers for the dbakit test suite.

Commands reach SQL Server only through ``connect_instance`` and module-level
data-access functions, so tests patch those and hand out ``MagicMock``
servers built by ``make_server``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from dbakit.helpers.errors import InstanceConnectionError
from dbakit.helpers.instance import SqlInstance

# ---------------------------------------------------------------------------
# Fake servers
# ---------------------------------------------------------------------------


def make_server(
    name: str = "sql01",
    *,
    version_major: int = 15,
    edition: str = "Enterprise Edition (64-bit)",
) -> MagicMock:
    """Build a ``SqlInstance`` stand-in with server properties filled in."""
    server = MagicMock(spec=SqlInstance)
    server.name = name
    server.target = name
    server.computer_name = name.split("\\")[0]
    server.instance_name = name.split("\\")[1] if "\\" in name else "MSSQLSERVER"
    server.version_major = version_major
    server.edition = edition
    return server


def fake_connect(
    servers: dict[str, MagicMock | Exception],
) -> Callable[..., MagicMock]:
    """Side effect for a patched ``connect_instance``.

    Targets mapped to an exception raise ``InstanceConnectionError``.
    """

    def _connect(target: str, *args: Any, **kwargs: Any) -> MagicMock:
        entry = servers[target]
        if isinstance(entry, Exception):
            raise InstanceConnectionError(str(entry), target)
        return entry

    return _connect


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer MSSQL_*/DBAKIT_* variables out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith(("MSSQL_", "DBAKIT_")):
            monkeypatch.delenv(key, raising=False)
    with patch("dbakit.helpers.helpers_logging._verbose", False):
        yield


@pytest.fixture()
def gate_calls() -> list[tuple[str, str]]:
    """Collects (target, action) pairs seen by a recording confirm callback."""
    return []


@pytest.fixture()
def approve_all(gate_calls: list[tuple[str, str]]) -> Callable[[str, str], bool]:
    def _confirm(target: str, action: str) -> bool:
        gate_calls.append((target, action))
        return True

    return _confirm
