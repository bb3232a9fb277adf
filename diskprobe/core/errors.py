"""Exception types raised by diskprobe.

Only `DiscoveryError` ever escapes the public engine methods. Everything
else is caught by the enrichment stages and turned into degraded field
values plus a log line.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Codes carried by `DiscoveryError`."""
    DISCOVERY_FAILED = "DISK_DISCOVERY_FAILED"
    DEVICE_NOT_FOUND = "DISK_NOT_FOUND"


class DiskProbeError(Exception):
    """Base class for all diskprobe errors."""
    pass


class ConfigError(DiskProbeError):
    """Raised when a configuration file cannot be loaded or validated."""
    pass


class ToolNotAvailable(DiskProbeError):
    """Raised when a required binary is not installed or not executable."""

    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        self.detail = detail
        message = f"{tool} is not available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProbeFailure(DiskProbeError):
    """An external probe ran (or tried to) and did not produce usable output."""

    def __init__(
        self,
        tool: str,
        reason: str,
        device: Optional[str] = None,
        output: Optional[str] = None,
        returncode: Optional[int] = None,
    ):
        self.tool = tool
        self.reason = reason
        self.device = device
        self.output = output
        self.returncode = returncode
        target = f" ({device})" if device else ""
        super().__init__(f"{tool}{target}: {reason}")


class ProbeTimeout(ProbeFailure):
    """The probe exceeded its deadline and was killed."""
    pass


class ProbeCancelled(ProbeFailure):
    """The caller cancelled the probe before or while it ran."""
    pass


class CommandRejected(ProbeFailure):
    """The command line failed argument validation and was never executed."""
    pass


class DiscoveryError(DiskProbeError):
    """Fatal-to-scan error surfaced to callers of the discovery engine.

    Attributes:
        code: ErrorCode classifying the failure
        operation: Engine operation that failed (e.g. 'discover_block_devices')
        device: Device path involved, if any
        metadata: Extra context such as the failing tool
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        operation: Optional[str] = None,
        device: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.operation = operation
        self.device = device
        self.metadata = dict(metadata or {})
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "code": self.code.value,
            "message": str(self),
            "operation": self.operation,
            "device": self.device,
        }
        if self.metadata:
            payload["metadata"] = self.metadata
        return payload
