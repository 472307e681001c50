"""Tests for the mcp-dock command line."""

import pytest
from typer.testing import CliRunner

from mcp_dock.cli import app

pytestmark = pytest.mark.integration

runner = CliRunner()


def test_no_arguments_shows_help():
    result = runner.invoke(app, [])

    assert "Usage" in result.output


def test_servers_lists_default_catalog(monkeypatch):
    monkeypatch.delenv("MCP_DOCK_CONFIG", raising=False)

    result = runner.invoke(app, ["servers"])

    assert result.exit_code == 0
    assert "MCP servers" in result.output
    assert "github" in result.output


def test_servers_from_config(tmp_path):
    path = tmp_path / "dock.yaml"
    path.write_text("servers:\n  notes:\n    category: file_system\n")

    result = runner.invoke(app, ["servers", "--config", str(path)])

    assert result.exit_code == 0
    assert "notes" in result.output
    assert "github" not in result.output


def test_check_config_valid(tmp_path):
    path = tmp_path / "dock.yaml"
    path.write_text("settings:\n  connect_timeout_s: 5\nservers:\n  notes:\n    category: file_system\n")

    result = runner.invoke(app, ["check-config", str(path)])

    assert result.exit_code == 0
    assert "OK" in result.output
    assert "servers: notes" in result.output
    assert "connect timeout: 5s" in result.output


def test_check_config_invalid(tmp_path):
    path = tmp_path / "dock.yaml"
    path.write_text("servers:\n  broken:\n    category: mainframe\n")

    result = runner.invoke(app, ["check-config", str(path)])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_check_config_missing_file(tmp_path):
    result = runner.invoke(app, ["check-config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
