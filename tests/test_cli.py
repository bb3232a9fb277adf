"""CLI integration tests running against canned probe output."""
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from diskprobe.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _mock_mode(monkeypatch):
    monkeypatch.setenv("DISKPROBE_MOCK", "1")
    yield
    monkeypatch.delenv("DISKPROBE_MOCK", raising=False)


def test_scan_writes_inventory(tmp_path: Path):
    output_path = tmp_path / "inventory" / "disks.json"

    result = runner.invoke(app, ["scan", "--output", str(output_path)])

    assert result.exit_code == 0
    payload = json.loads(output_path.read_text())
    assert payload["metadata"]["mock"] is True
    assert payload["metadata"]["device_count"] == 4

    devices = {d["device_path"]: d for d in payload["devices"]}
    assert devices["/dev/sdb"]["pool_name"] == "tank"
    assert devices["/dev/sdb"]["state"] == "DEGRADED"
    assert devices["/dev/sdc"]["device_id_source"] == "wwn"
    assert payload["stages"]["smart"]["probe_failed"] == 1

    assert "4 disk(s): 1 available, 0 system, 3 in pools" in result.stdout
    assert "Inventory written to" in result.stdout


def test_scan_json(tmp_path: Path):
    result = runner.invoke(app, ["scan", "--json"])

    assert result.exit_code == 0
    assert '"device_count": 4' in result.stdout
    assert '"pool_name": "rpool"' in result.stdout


def test_refresh_known_device():
    result = runner.invoke(app, ["refresh", "/dev/sda", "--json"])

    assert result.exit_code == 0
    assert '"device_path": "/dev/sda"' in result.stdout
    assert '"pool_name": "tank"' in result.stdout


def test_refresh_unknown_device():
    result = runner.invoke(app, ["refresh", "/dev/sdz"])

    assert result.exit_code == 1
    assert "Device not found: /dev/sdz" in result.stdout


def test_tools_in_mock_mode():
    result = runner.invoke(app, ["tools", "--json"])

    assert result.exit_code == 0
    assert '"lsblk"' in result.stdout
    assert '"version": "mock"' in result.stdout


def test_env_in_mock_mode():
    result = runner.invoke(app, ["env"])

    assert result.exit_code == 0
    assert "Environment:" in result.stdout
    assert "physical" in result.stdout


def test_invalid_config_file(tmp_path: Path):
    config_path = tmp_path / "diskprobe.yml"
    config_path.write_text("smartctl_timeout: soon\n")

    result = runner.invoke(app, ["scan", "--config", str(config_path)])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.stdout


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("scan", "refresh", "tools", "env"):
        assert command in result.stdout
