"""Tool availability checking."""
import os
import shutil
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from diskprobe.core.command import CommandExecutor
from diskprobe.core.config import DiskProbeConfig, get_config
from diskprobe.core.errors import DiskProbeError
from diskprobe.core.logger import get_logger

logger = get_logger(__name__)

DISCOVERY_TOOLS = ("lsblk", "udevadm", "smartctl", "zpool")


@dataclass
class ToolStatus:
    """Availability of one binary."""
    name: str
    path: str = ""
    available: bool = False
    version: str = ""
    error: str = ""


class ToolChecker:
    """Answers `tool_available(name)`, caching the result per tool.

    A missing tool makes the discovery engine skip the stage that needs it,
    which is different from the tool being present and failing at runtime.
    """

    def __init__(self, config: Optional[DiskProbeConfig] = None, executor: Optional[CommandExecutor] = None):
        self.config = config or get_config()
        self.executor = executor or CommandExecutor(mock=self.config.mock)
        self._cache: Dict[str, ToolStatus] = {}
        self._lock = threading.Lock()

    def tool_available(self, name: str) -> bool:
        return self.status(name).available

    def status(self, name: str) -> ToolStatus:
        with self._lock:
            cached = self._cache.get(name)
            if cached is None:
                cached = self._check(name)
                self._cache[name] = cached
            return cached

    def check_all(self, names: Iterable[str] = DISCOVERY_TOOLS) -> Dict[str, ToolStatus]:
        return {name: self.status(name) for name in names}

    def refresh(self) -> None:
        """Forget cached results so the next query re-checks."""
        with self._lock:
            self._cache.clear()

    def _check(self, name: str) -> ToolStatus:
        configured = self.config.tool_path(name)
        status = ToolStatus(name=name, path=configured)

        if self.config.mock:
            status.available = True
            status.version = "mock"
            return status

        resolved = self._resolve(configured)
        if resolved is None:
            status.error = f"{configured} not found in PATH or not executable"
            logger.debug(f"Tool not available: {name} ({status.error})")
            return status

        status.path = resolved
        status.available = True

        if self.config.check_versions:
            status.version = self._version(name, resolved)

        return status

    @staticmethod
    def _resolve(configured: str) -> Optional[str]:
        if os.path.isabs(configured):
            return configured if os.access(configured, os.X_OK) else None
        return shutil.which(configured)

    def _version(self, name: str, path: str) -> str:
        try:
            result = self.executor.run(
                name,
                path,
                ["--version"],
                timeout=self.config.tool_check_timeout,
                ok_codes=tuple(range(256)),
            )
        except DiskProbeError as exc:
            logger.debug(f"Version check failed for {name}: {exc}")
            return "unknown"
        return parse_version(name, result.stdout or result.stderr)


def parse_version(name: str, output: str) -> str:
    """Extract a version string from `<tool> --version` output."""
    lines = output.strip().splitlines()
    if not lines:
        return "unknown"
    first = lines[0].strip()
    parts = first.split()

    if name == "smartctl" and first.startswith("smartctl") and len(parts) >= 2:
        # "smartctl 7.2 2020-12-30 r5155 [x86_64-linux-5.10.0-8-amd64] (local build)"
        return parts[1]
    if name == "lsblk" and "util-linux" in first and len(parts) >= 4:
        # "lsblk from util-linux 2.36.1"
        return parts[3]
    if name == "udevadm" and parts:
        # "252" on recent systemd, "systemd 247 (247.3-6)" on older ones
        return parts[1] if parts[0] == "systemd" and len(parts) >= 2 else parts[0]
    if name == "zpool" and first.startswith("zfs-"):
        # "zfs-2.2.2-0ubuntu9"
        return first[len("zfs-"):]

    return first if len(first) <= 50 else first[:50] + "..."
