"""SMART diagnostic payload models."""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class SMARTAttribute:
    """One row of the ATA SMART attribute table."""
    id: int
    name: str
    value: int
    worst: int
    threshold: int
    raw_value: int
    when_failed: str = ""
    flags: str = ""
    prefail: bool = False

    @property
    def failure_near(self) -> bool:
        """Normalized value has reached the vendor threshold."""
        return self.threshold > 0 and self.value <= self.threshold


@dataclass
class NVMeHealth:
    """NVMe SMART / health information log."""
    critical_warning: int = 0
    temperature: int = 0
    available_spare: int = 0
    available_spare_threshold: int = 0
    percentage_used: int = 0
    data_units_read: int = 0
    data_units_written: int = 0
    power_cycles: int = 0
    power_on_hours: int = 0
    unsafe_shutdowns: int = 0
    media_errors: int = 0
    error_log_entries: int = 0


@dataclass
class SMARTInfo:
    """Parsed result of a SMART info probe. Opaque to the classifier."""
    device_path: str
    available: bool = False
    enabled: bool = False
    protocol: str = ""
    model: str = ""
    serial: str = ""
    firmware: str = ""
    rotation_rate: Optional[int] = None   # 0 = solid state, RPM otherwise
    overall_passed: Optional[bool] = None
    temperature: Optional[int] = None
    power_on_hours: Optional[int] = None
    power_cycles: Optional[int] = None
    attributes: Dict[int, SMARTAttribute] = field(default_factory=dict)
    nvme_health: Optional[NVMeHealth] = None
    exit_status: int = 0
    collected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def overall_status(self) -> str:
        if self.overall_passed is None:
            return "UNKNOWN"
        return "PASSED" if self.overall_passed else "FAILED"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["attributes"] = {str(k): v for k, v in data["attributes"].items()}
        data["overall_status"] = self.overall_status
        data["collected_at"] = self.collected_at.isoformat()
        return data
