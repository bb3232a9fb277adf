"""Shared test fixtures for diskprobe tests."""
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

from diskprobe.core.command import CommandExecutor, CommandResult
from diskprobe.core.config import DiskProbeConfig, set_config
from diskprobe.discovery.scanner import DiskDiscovery
from diskprobe.models.environment import DeploymentEnvironment, EnvironmentInfo
from diskprobe.tools.checker import DISCOVERY_TOOLS


def disk_node(name: str, serial: Optional[str] = None, children: Iterable[Dict[str, Any]] = (), **extra) -> Dict[str, Any]:
    """lsblk JSON node for a whole disk."""
    node = {
        "name": f"/dev/{name}",
        "path": f"/dev/{name}",
        "type": "disk",
        "maj:min": extra.pop("maj_min", "8:0"),
        "size": extra.pop("size", 1_000_204_886_016),
        "model": extra.pop("model", "TestDisk 1TB"),
        "serial": serial,
        "rota": extra.pop("rota", False),
        "tran": extra.pop("tran", "sata"),
        "mountpoint": None,
        "children": list(children),
    }
    node.update(extra)
    return node


def part_node(name: str, mountpoint: Optional[str] = None, children: Iterable[Dict[str, Any]] = (), **extra) -> Dict[str, Any]:
    """lsblk JSON node for a partition (or any holder below a disk)."""
    node = {
        "name": f"/dev/{name}",
        "path": f"/dev/{name}",
        "type": extra.pop("type", "part"),
        "maj:min": extra.pop("maj_min", "8:1"),
        "size": extra.pop("size", 1_000_000_000),
        "mountpoint": mountpoint,
        "children": list(children),
    }
    node.update(extra)
    return node


def leaf_vdev(path: str, state: str = "ONLINE") -> Dict[str, Any]:
    return {"name": path.rsplit("/", 1)[-1], "vdev_type": "disk", "path": path, "state": state}


def group_vdev(name: str, children: Sequence[Dict[str, Any]], vdev_type: str = "mirror", state: str = "ONLINE") -> Dict[str, Any]:
    return {
        "name": name,
        "vdev_type": vdev_type,
        "state": state,
        "vdevs": {child["name"]: child for child in children},
    }


def pool_doc(**pools: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """`zpool status -j` document; each keyword is a pool with its top-level vdevs."""
    return {
        "pools": {
            name: {
                "name": name,
                "state": "ONLINE",
                "vdevs": {name: group_vdev(name, vdevs, vdev_type="root")},
            }
            for name, vdevs in pools.items()
        }
    }


class ProbeScript:
    """Scripted probe output, answering CommandExecutor mock calls.

    Tests fill in what each tool should report; anything not scripted
    behaves like a probe that failed.
    """

    def __init__(self):
        self.block_devices: List[Dict[str, Any]] = []
        self.udev: Dict[str, Dict[str, str]] = {}
        self.smart: Dict[str, Dict[str, Any]] = {}
        self.self_tests: Dict[str, Dict[str, Any]] = {}
        self.pools: Optional[Dict[str, Any]] = {"pools": {}}
        self.lsblk_error: Optional[str] = None
        self.calls: List[tuple] = []

    def respond(self, tool: str, args: Sequence[str]) -> CommandResult:
        self.calls.append((tool, tuple(args)))
        handler = getattr(self, f"_{tool.replace('-', '_')}", None)
        if handler is None:
            return CommandResult("", f"{tool}: not scripted", 1)
        return handler(list(args))

    def calls_for(self, tool: str) -> List[tuple]:
        return [args for name, args in self.calls if name == tool]

    def _lsblk(self, args):
        if self.lsblk_error is not None:
            return CommandResult("", self.lsblk_error, 1)
        if "--exclude" in args:
            return _ok({"blockdevices": self.block_devices})
        device = args[-1]
        for node in self.block_devices:
            if node["path"] == device:
                return _ok({"blockdevices": [node]})
        return CommandResult("", f"lsblk: {device}: not a block device", 32)

    def _udevadm(self, args):
        name = next(a.split("=", 1)[1] for a in args if a.startswith("--name="))
        if name not in self.udev:
            return CommandResult("", f"Unknown device \"{name}\"", 4)
        return CommandResult("\n".join(f"{k}={v}" for k, v in self.udev[name].items()), "", 0)

    def _smartctl(self, args):
        device = args[-1]
        table = self.self_tests if "--all" in args else self.smart
        if device not in table:
            return CommandResult(json.dumps({"smartctl": {"exit_status": 2}}), "", 2)
        return _ok(table[device])

    def _zpool(self, args):
        if self.pools is None:
            return CommandResult("", "cannot open /dev/zfs", 1)
        return _ok(self.pools)


def _ok(payload: Any) -> CommandResult:
    return CommandResult(json.dumps(payload), "", 0)


class StaticToolChecker:
    """ToolChecker stand-in with a fixed set of installed tools."""

    def __init__(self, available: Iterable[str] = DISCOVERY_TOOLS):
        self.available = set(available)

    def tool_available(self, name: str) -> bool:
        return name in self.available


class StaticEnvironment:
    """EnvironmentDetector stand-in returning a fixed answer."""

    def __init__(self, info: Optional[EnvironmentInfo] = None, error: Optional[Exception] = None):
        self.info = info or EnvironmentInfo(type=DeploymentEnvironment.PHYSICAL)
        self.error = error
        self.calls = 0

    def detect_environment(self, ctx=None) -> EnvironmentInfo:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.info


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Each test starts with default config and no DISKPROBE_* overrides."""
    import os

    for key in list(os.environ):
        if key.startswith("DISKPROBE_"):
            monkeypatch.delenv(key)
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def probes():
    return ProbeScript()


@pytest.fixture
def config():
    return DiskProbeConfig()


@pytest.fixture
def executor(probes):
    return CommandExecutor(mock=True, mock_responder=probes.respond)


@pytest.fixture
def make_discovery(config, executor):
    """Build a DiskDiscovery wired to scripted probes."""

    def _make(available: Iterable[str] = DISCOVERY_TOOLS, env: Optional[StaticEnvironment] = None) -> DiskDiscovery:
        return DiskDiscovery(
            config=config,
            executor=executor,
            tool_checker=StaticToolChecker(available),
            env_detector=env or StaticEnvironment(),
        )

    return _make
