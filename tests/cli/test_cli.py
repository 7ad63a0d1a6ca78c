"""Tests for the tgmigrate CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from tests.conftest import FakeGateway
from tgmigrate.cli.main import app
from tgmigrate.exceptions import NonOKStatusError, UnknownInitialisationError
from tgmigrate.types import MigrationRecord

runner = CliRunner()


def _gateway(**kwargs) -> FakeGateway:
    kwargs.setdefault("records", [MigrationRecord(graph_name="MyGraph", version="001", direction="up")])
    return FakeGateway(**kwargs)


def test_migrate_applies_steps(migration_dir):
    gw = _gateway()
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["migrate", "003", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 0, result.output
    assert gw.scripts == ["example 002 up", "example 003 up"]
    assert "applied" in result.output


def test_migrate_already_at_version(migration_dir):
    gw = _gateway()
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["migrate", "001", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 0
    assert "already at version 001" in result.output


def test_migrate_requires_graph(migration_dir):
    result = runner.invoke(app, ["migrate", "001", "--graph", "", "--dir", str(migration_dir)])
    assert result.exit_code == 1


def test_migrate_requires_version(migration_dir):
    result = runner.invoke(app, ["migrate", "", "--graph", "MyGraph", "--dir", str(migration_dir)])
    assert result.exit_code == 1


def test_plan_is_a_dry_run(migration_dir):
    gw = _gateway()
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["plan", "003", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 0, result.output
    assert gw.calls_to("run_script") == []
    assert gw.calls_to("commit") == []
    assert "pending" in result.output


def test_plan_unreadable_script_exits_1(migration_dir):
    (migration_dir / "002_create_knows_edge.up.gsql").write_bytes(b"\xff\xfe")
    gw = _gateway()
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["plan", "003", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_migrate_failure_exits_1(migration_dir):
    gw = _gateway(init_error=UnknownInitialisationError("ambiguous"))
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["migrate", "002", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 1
    assert "Migration failed" in result.output


def test_partial_failure_exits_2(migration_dir):
    gw = _gateway(commit_errors={0: NonOKStatusError(500)})
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["migrate", "002", "--graph", "MyGraph", "--dir", str(migration_dir)])

    assert result.exit_code == 2
    assert "IMPORTANT" in result.output


def test_status_initialised():
    gw = _gateway()
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["status", "--graph", "MyGraph"])

    assert result.exit_code == 0
    assert "001" in result.output


def test_status_not_initialised():
    gw = _gateway(initialised=False)
    with patch("tgmigrate.cli.context.build_gateway", return_value=gw):
        result = runner.invoke(app, ["status", "--graph", "MyGraph"])

    assert result.exit_code == 0
    assert "not initialised" in result.output
    assert gw.calls_to("latest_version") == []


def test_list_migrations(migration_dir):
    result = runner.invoke(app, ["list", "--dir", str(migration_dir)])
    assert result.exit_code == 0
    assert "create_person" in result.output


def test_list_empty_dir(tmp_path):
    result = runner.invoke(app, ["list", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    assert "No migrations found" in result.output


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "tgmigrate v" in result.output
