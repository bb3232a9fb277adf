"""diskprobe runtime configuration and settings."""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from diskprobe.core.errors import ConfigError

_BOOL_TRUE = {"1", "true", "yes", "on"}


@dataclass
class DiskProbeConfig:
    """Runtime configuration for discovery operations.

    Attributes:
        lsblk_path: lsblk binary (name or absolute path)
        udevadm_path: udevadm binary
        smartctl_path: smartctl binary
        zpool_path: zpool binary
        use_sudo: Prefix probe commands with sudo
        lsblk_timeout: Timeout in seconds for block device enumeration (default: 10)
        udevadm_timeout: Timeout in seconds for udev property queries (default: 10)
        smartctl_timeout: Timeout in seconds for SMART queries (default: 60)
        zpool_timeout: Timeout in seconds for pool status queries (default: 30)
        tool_check_timeout: Timeout in seconds for tool version checks (default: 5)
        environment_timeout: Timeout in seconds for environment detection (default: 10)
        check_versions: Run `<tool> --version` when checking tool availability
        mock: Answer probes from canned output instead of running tools
    """

    # Tool locations
    lsblk_path: str = "lsblk"
    udevadm_path: str = "udevadm"
    smartctl_path: str = "smartctl"
    zpool_path: str = "zpool"
    use_sudo: bool = False

    # Probe timeouts
    lsblk_timeout: int = 10
    udevadm_timeout: int = 10
    smartctl_timeout: int = 60  # SMART queries can be slow on busy disks
    zpool_timeout: int = 30
    tool_check_timeout: int = 5
    environment_timeout: int = 10

    check_versions: bool = False
    mock: bool = False

    def tool_path(self, tool: str) -> str:
        """Return the configured binary for a tool name."""
        return getattr(self, f"{tool}_path", tool)

    def tool_timeout(self, tool: str) -> int:
        """Return the configured timeout for a tool name."""
        return getattr(self, f"{tool}_timeout", 30)

    @classmethod
    def from_env(cls, base: Optional["DiskProbeConfig"] = None) -> "DiskProbeConfig":
        """Create config from environment variables.

        Every field can be overridden with DISKPROBE_<FIELD> (upper case),
        e.g. DISKPROBE_SMARTCTL_TIMEOUT=120 or DISKPROBE_MOCK=1.

        Args:
            base: Config whose values are used when a variable is unset

        Returns:
            DiskProbeConfig instance with values from environment or defaults
        """
        base = base or cls()
        values: Dict[str, Any] = {}
        for field in fields(cls):
            raw = os.getenv(f"DISKPROBE_{field.name.upper()}")
            current = getattr(base, field.name)
            if raw is None:
                values[field.name] = current
            else:
                values[field.name] = _coerce(field.name, raw, type(current))
        return cls(**values)

    @classmethod
    def from_file(cls, path: Path) -> "DiskProbeConfig":
        """Load configuration from a YAML file.

        Raises:
            ConfigError: If the file is missing, unparseable, or has unknown keys
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse config YAML: {exc}") from exc

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ConfigError("Config file must contain a mapping")

        # Tool paths may be nested under a `tools:` section
        tools = raw.pop("tools", None) or {}
        if not isinstance(tools, dict):
            raise ConfigError("'tools' section must be a mapping")
        for tool, tool_path in tools.items():
            raw[f"{tool}_path"] = tool_path

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(raw) - set(known))
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        defaults = cls()
        values = {}
        for name, value in raw.items():
            expected = type(getattr(defaults, name))
            if isinstance(value, str) and expected is not str:
                value = _coerce(name, value, expected)
            elif expected is int and isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer")
            elif not isinstance(value, expected):
                raise ConfigError(f"{name} must be of type {expected.__name__}")
            values[name] = value
        return cls(**values)


def _coerce(name: str, raw: str, expected: type) -> Any:
    if expected is bool:
        return raw.strip().lower() in _BOOL_TRUE
    if expected is int:
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    return raw


def load_config(path: Optional[Path] = None) -> DiskProbeConfig:
    """Build config from an optional YAML file, then apply env overrides."""
    base = DiskProbeConfig.from_file(path) if path else DiskProbeConfig()
    return DiskProbeConfig.from_env(base)


# Global config instance (can be overridden)
_config: Optional[DiskProbeConfig] = None


def get_config() -> DiskProbeConfig:
    """Get the global diskprobe configuration.

    Returns:
        DiskProbeConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = DiskProbeConfig.from_env()
    return _config


def set_config(config: Optional[DiskProbeConfig]):
    """Set the global diskprobe configuration.

    Args:
        config: DiskProbeConfig instance to use globally (None resets it)
    """
    global _config
    _config = config
