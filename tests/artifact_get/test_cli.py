"""Command line: fetch commands, warnings, exit codes, settings output."""

from __future__ import annotations

import json

import httpx
import pytest
from typer.testing import CliRunner

from ArtifactGet import __version__, cli

runner = CliRunner()


@pytest.fixture
def mock_network(server, monkeypatch):
    """Route every client the CLI builds through the in-memory server."""

    def build(settings=None):
        return httpx.Client(transport=server.transport())

    monkeypatch.setattr(cli, "build_http_client", build)
    return server


def test_version_option():
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert f"artifact-get {__version__}" in result.output


def test_get_file(mock_network, tmp_path):
    mock_network.add("/tool.bin", body=b"payload")
    destination = tmp_path / "tool.bin"

    result = runner.invoke(
        cli.app, ["get", "https://example.com/tool.bin", str(destination), "--mode", "file"]
    )

    assert result.exit_code == 0, result.output
    assert destination.read_bytes() == b"payload"
    assert "Fetched" in result.output


def test_get_prints_directive_warning(mock_network, tmp_path):
    mock_network.add("/tool.bin", body=b"payload")

    result = runner.invoke(
        cli.app,
        ["get", "https://example.com/tool.bin?ranged_request_bytes=9-3", str(tmp_path / "t.bin")],
    )

    assert result.exit_code == 0, result.output
    assert "Warning:" in result.output
    assert "Invalid byte range provided" in result.output


def test_get_directory_via_discovery(mock_network, tmp_path, make_zip):
    mock_network.add("/modules/", headers={"X-Terraform-Get": "https://example.com/m.zip//inner"})
    mock_network.add("/m.zip", body=make_zip({"inner/main.tf": "x", "outer.tf": "y"}))
    destination = tmp_path / "out"

    result = runner.invoke(cli.app, ["get", "https://example.com/modules/", str(destination)])

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in destination.iterdir()) == ["main.tf"]


def test_protocol_error_exits_with_status_one(mock_network, tmp_path):
    mock_network.add("/modules/", status=404)

    result = runner.invoke(
        cli.app, ["get", "https://example.com/modules/", str(tmp_path / "out"), "--mode", "dir"]
    )

    assert result.exit_code == 1
    assert "bad response code: 404" in result.output


def test_filesystem_error_exits_with_status_one(mock_network, tmp_path):
    mock_network.add("/tool.bin", body=b"payload")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    result = runner.invoke(
        cli.app, ["get", "https://example.com/tool.bin", str(blocker / "tool.bin"), "--mode", "file"]
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_unsupported_scheme_exits_with_status_one(mock_network, tmp_path):
    result = runner.invoke(cli.app, ["get", "ftp://example.com/a", str(tmp_path / "a")])

    assert result.exit_code == 1
    assert "download not supported" in result.output


def test_invalid_config_exits_with_status_one(tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("http: [unclosed\n")

    result = runner.invoke(cli.app, ["--config", str(config), "settings"])

    assert result.exit_code == 1
    assert "invalid YAML" in result.output


def test_settings_command_prints_effective_json(tmp_path, monkeypatch):
    config = tmp_path / "settings.yaml"
    config.write_text("netrc: true\nhttp:\n  timeout_read: 45\n")
    monkeypatch.setenv("ARTIFACTGET_USER_AGENT", "cli-test/1")

    result = runner.invoke(cli.app, ["--config", str(config), "-vv", "settings"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["netrc"] is True
    assert payload["http"]["timeout_read"] == 45
    assert payload["http"]["user_agent"] == "cli-test/1"
    assert payload["logging"]["level"] == "DEBUG"
