"""Physical disk models."""
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from diskprobe.models.smart import SMARTInfo


class DeviceType(Enum):
    """Disk technology type."""
    NVME = "NVME"
    SSD = "SSD"
    HDD = "HDD"
    UNKNOWN = "UNKNOWN"


class InterfaceType(Enum):
    """Bus the disk is attached through."""
    SATA = "SATA"
    SAS = "SAS"
    NVME = "NVME"
    USB = "USB"
    VIRTIO = "VIRTIO"
    UNKNOWN = "UNKNOWN"


class DiskState(Enum):
    """Role of a disk as derived by the last scan."""
    AVAILABLE = "AVAILABLE"  # Free capacity
    SYSTEM = "SYSTEM"        # Hosts a mounted file system
    ONLINE = "ONLINE"        # Pool member, ZFS vdev states from here down
    DEGRADED = "DEGRADED"
    FAULTED = "FAULTED"
    UNAVAIL = "UNAVAIL"
    OFFLINE = "OFFLINE"
    UNKNOWN = "UNKNOWN"


class HealthStatus(Enum):
    """Overall health assessment."""
    UNKNOWN = "UNKNOWN"
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    FAILED = "FAILED"


class DeviceIDSource(Enum):
    """Policy tier that produced a disk's DeviceID, strongest first."""
    SERIAL = "serial"
    WWN = "wwn"
    BY_ID = "by-id"
    PATH = "path"


@dataclass
class PhysicalDisk:
    """Represents a physical disk in the system."""
    device_path: str                       # /dev/sda, primary lookup key
    device_id: str = ""                    # Stable identity, never empty after __post_init__
    device_id_source: DeviceIDSource = DeviceIDSource.PATH
    device_links: List[str] = field(default_factory=list)  # /dev/disk/by-* aliases
    serial: str = ""
    wwn: str = ""
    model: str = ""
    vendor: str = ""
    size_bytes: int = 0
    disk_type: DeviceType = DeviceType.UNKNOWN
    interface: InterfaceType = InterfaceType.UNKNOWN
    by_id_path: str = ""
    by_path_path: str = ""
    state: DiskState = DiskState.AVAILABLE
    health: HealthStatus = HealthStatus.UNKNOWN
    pool_name: str = ""
    smart_available: bool = False
    smart_enabled: bool = False
    smart_tests_supported: bool = False
    smart_info: Optional[SMARTInfo] = None
    discovered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.device_path:
            raise ValueError("PhysicalDisk requires a device_path")
        if not self.device_id:
            self.device_id = self.device_path
            self.device_id_source = DeviceIDSource.PATH

    @property
    def size_human(self) -> str:
        """Human-readable size."""
        size = float(self.size_bytes)
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if size < 1024:
                return f"{size:.1f}{unit}"
            size /= 1024
        return f"{size:.1f}PB"

    @property
    def is_in_pool(self) -> bool:
        return bool(self.pool_name)

    @property
    def lookup_paths(self) -> List[str]:
        """Every path this disk can be addressed by: links plus the device path."""
        paths = list(self.device_links)
        if self.device_path not in paths:
            paths.append(self.device_path)
        return paths

    def copy(self) -> "PhysicalDisk":
        """Deep copy; mutating the copy never affects the original."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation."""
        return {
            "device_path": self.device_path,
            "device_id": self.device_id,
            "device_id_source": self.device_id_source.value,
            "device_links": list(self.device_links),
            "serial": self.serial,
            "wwn": self.wwn,
            "model": self.model,
            "vendor": self.vendor,
            "size_bytes": self.size_bytes,
            "type": self.disk_type.value,
            "interface": self.interface.value,
            "by_id_path": self.by_id_path,
            "by_path_path": self.by_path_path,
            "state": self.state.value,
            "health": self.health.value,
            "pool_name": self.pool_name,
            "smart_available": self.smart_available,
            "smart_enabled": self.smart_enabled,
            "smart_tests_supported": self.smart_tests_supported,
            "smart_info": self.smart_info.to_dict() if self.smart_info else None,
            "discovered_at": self.discovered_at.isoformat(),
        }
