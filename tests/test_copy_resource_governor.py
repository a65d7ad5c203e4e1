"""Unit tests for copy_resource_governor.py."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from dbakit.core.copy_resource_governor import (
    copy_resource_governor,
    drop_resource_pool,
    script_resource_pool,
    script_workload_group,
)
from dbakit.helpers.status import Outcome
from tests.conftest import fake_connect, make_server

_MODULE = "dbakit.core.copy_resource_governor"

_POOL = {
    "pool_id": 256,
    "name": "reporting",
    "min_cpu_percent": 0,
    "max_cpu_percent": 50,
    "cap_cpu_percent": 60,
    "min_memory_percent": 0,
    "max_memory_percent": 40,
    "min_iops_per_volume": 0,
    "max_iops_per_volume": 500,
}


def _pool(name: str, **overrides: Any) -> dict[str, Any]:
    return {**_POOL, "name": name, **overrides}


def _group(name: str, pool: str) -> dict[str, Any]:
    return {"name": name, "pool_name": pool, "importance": "Medium", "max_dop": 4}


# ---------------------------------------------------------------------------
# Scripting
# ---------------------------------------------------------------------------


class TestScripting:
    def test_pool_options_by_version(self) -> None:
        sql_2008 = script_resource_pool(_POOL, 10)
        sql_2012 = script_resource_pool(_POOL, 11)
        sql_2014 = script_resource_pool(_POOL, 12)

        assert "CAP_CPU_PERCENT" not in sql_2008
        assert "CAP_CPU_PERCENT=60" in sql_2012
        assert "MAX_IOPS_PER_VOLUME" not in sql_2012
        assert "MAX_IOPS_PER_VOLUME=500" in sql_2014
        assert sql_2014.startswith("CREATE RESOURCE POOL [reporting] WITH (MIN_CPU_PERCENT=0")

    def test_workload_group_uses_pool(self) -> None:
        sql = script_workload_group(_group("reports", "report]ing"))
        assert sql == (
            "CREATE WORKLOAD GROUP [reports] WITH (IMPORTANCE=MEDIUM, MAX_DOP=4) "
            "USING [report]]ing];"
        )

    def test_drop_pool_removes_groups_first(self) -> None:
        server = make_server("dst")
        server.query.return_value = [_group("g1", "reporting"), _group("g2", "other")]

        drop_resource_pool(server, "reporting")

        statements = [c.args[0] for c in server.execute.call_args_list]
        assert statements == [
            "DROP WORKLOAD GROUP [g1];",
            "DROP RESOURCE POOL [reporting];",
            "ALTER RESOURCE GOVERNOR RECONFIGURE;",
        ]


# ---------------------------------------------------------------------------
# copy_resource_governor
# ---------------------------------------------------------------------------


@pytest.fixture()
def governor() -> Any:
    """Patch server access; returns a namespace of mocks and per-server state."""
    state: dict[str, Any] = {
        "pools": {"src": [_pool("default"), _pool("etl"), _pool("internal"), _pool("reporting")]},
        "groups": {"src": [_group("reports", "reporting"), _group("loads", "etl")]},
        "config": {"src": {"is_enabled": True}},
    }
    mocks = {
        name: MagicMock()
        for name in (
            "drop_classifier",
            "create_classifier",
            "drop_resource_pool",
            "create_resource_pool",
            "drop_workload_group",
            "create_workload_group",
            "set_governor_state",
        )
    }
    readers = {
        "get_resource_pools": lambda s: state["pools"].get(s.name, []),
        "get_workload_groups": lambda s: state["groups"].get(s.name, []),
        "get_governor_configuration": lambda s: state["config"].get(s.name, {"is_enabled": False}),
        "function_exists": lambda *_a: False,
    }
    patches = [patch(f"{_MODULE}.{n}", m) for n, m in mocks.items()]
    patches += [patch(f"{_MODULE}.{n}", side_effect=f) for n, f in readers.items()]
    for p in patches:
        p.start()
    try:
        yield state, mocks
    finally:
        for p in patches:
            p.stop()


class TestCopyResourceGovernor:
    @patch(f"{_MODULE}.connect_instance")
    def test_copies_user_pools_and_groups(self, mock_connect: MagicMock, governor: Any) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        results = copy_resource_governor("src", "dst")

        assert [(r.type, r.name) for r in results] == [
            ("Resource Governor Pool", "etl"),
            ("Resource Governor Pool Workload Group", "loads"),
            ("Resource Governor Pool", "reporting"),
            ("Resource Governor Pool Workload Group", "reports"),
            ("Resource Governor Reconfigure", "Reconfigure Resource Governor"),
        ]
        created = [c.args[1]["name"] for c in mocks["create_resource_pool"].call_args_list]
        assert created == ["etl", "reporting"]
        mocks["set_governor_state"].assert_called_once()
        assert mocks["set_governor_state"].call_args.args[1] is True

    @patch(f"{_MODULE}.connect_instance")
    def test_pool_filters(self, mock_connect: MagicMock, governor: Any) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        copy_resource_governor("src", "dst", exclude_resource_pool=["ETL"])
        assert [c.args[1]["name"] for c in mocks["create_resource_pool"].call_args_list] == ["reporting"]

        mocks["create_resource_pool"].reset_mock()
        copy_resource_governor("src", "dst", resource_pool=["etl"])
        assert [c.args[1]["name"] for c in mocks["create_resource_pool"].call_args_list] == ["etl"]

    @patch(f"{_MODULE}.connect_instance")
    def test_existing_pool_skipped_without_groups(self, mock_connect: MagicMock, governor: Any) -> None:
        state, mocks = governor
        state["pools"]["dst"] = [_pool("reporting")]
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        results = copy_resource_governor("src", "dst", resource_pool=["reporting"])

        assert results[0].status is Outcome.SKIPPED
        assert not [r for r in results if r.name == "reports"]
        mocks["drop_resource_pool"].assert_not_called()
        mocks["create_workload_group"].assert_not_called()

    @patch(f"{_MODULE}.connect_instance")
    def test_force_replaces_pool(self, mock_connect: MagicMock, governor: Any) -> None:
        state, mocks = governor
        state["pools"]["dst"] = [_pool("reporting")]
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        results = copy_resource_governor("src", "dst", resource_pool=["reporting"], force=True)

        mocks["drop_resource_pool"].assert_called_once()
        assert results[0].status is Outcome.SUCCESSFUL

    @patch(f"{_MODULE}.connect_instance")
    def test_unsupported_edition(self, mock_connect: MagicMock, governor: Any) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({
            "src": make_server("src"),
            "std": make_server("std", edition="Standard Edition (64-bit)"),
            "dst": make_server("dst"),
        })

        results = copy_resource_governor("src", ["std", "dst"], resource_pool=["etl"])

        assert {r.destination_server for r in results} == {"dst"}
        assert mocks["create_resource_pool"].call_count == 1

    @patch(f"{_MODULE}.connect_instance")
    def test_classifier_copied_when_present(self, mock_connect: MagicMock, governor: Any) -> None:
        state, mocks = governor
        state["config"]["src"] = {
            "is_enabled": True,
            "schema_name": "dbo",
            "function_name": "fn_classifier",
            "definition": "CREATE FUNCTION dbo.fn_classifier() RETURNS sysname AS BEGIN RETURN N'default' END",
        }
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        results = copy_resource_governor("src", "dst", resource_pool=["none"])

        assert (results[0].type, results[0].name) == ("Resource Governor Settings", "fn_classifier")
        mocks["create_classifier"].assert_called_once()

    @patch(f"{_MODULE}.connect_instance")
    def test_dry_run_makes_no_changes(self, mock_connect: MagicMock, governor: Any) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({"src": make_server("src"), "dst": make_server("dst")})

        assert copy_resource_governor("src", "dst", dry_run=True) == []
        for mock in mocks.values():
            mock.assert_not_called()

    @patch(f"{_MODULE}.connect_instance")
    def test_read_error_on_destination_does_not_stop_others(
        self, mock_connect: MagicMock, governor: Any,
    ) -> None:
        state, mocks = governor
        servers = {name: make_server(name) for name in ("src", "bad", "ok")}
        mock_connect.side_effect = fake_connect(servers)

        def _pools(server: MagicMock) -> list[dict[str, Any]]:
            if server.name == "bad":
                raise RuntimeError("permission denied")
            return state["pools"].get(server.name, [])

        with patch(f"{_MODULE}.get_resource_pools", side_effect=_pools):
            results = copy_resource_governor("src", ["bad", "ok"], resource_pool=["etl"])

        assert {r.destination_server for r in results} == {"ok"}
        assert mocks["create_resource_pool"].call_args.args[0] is servers["ok"]
        servers["bad"].close.assert_called_once()

    @patch(f"{_MODULE}.connect_instance")
    def test_unreachable_source_aborts(self, mock_connect: MagicMock, governor: Any) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({"down": RuntimeError("timeout")})

        assert copy_resource_governor("down", ["dst"]) == []
        assert mock_connect.call_count == 1
        mocks["create_resource_pool"].assert_not_called()

    @patch(f"{_MODULE}.connect_instance")
    def test_unreachable_destination_does_not_stop_others(
        self, mock_connect: MagicMock, governor: Any,
    ) -> None:
        _state, mocks = governor
        mock_connect.side_effect = fake_connect({
            "src": make_server("src"),
            "down": RuntimeError("timeout"),
            "dst": make_server("dst"),
        })

        results = copy_resource_governor("src", ["down", "dst"], resource_pool=["etl"])

        assert {r.destination_server for r in results} == {"dst"}
        assert mocks["create_resource_pool"].call_count == 1
