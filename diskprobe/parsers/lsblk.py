"""lsblk JSON wire models and physical-disk filtering."""
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from diskprobe.core.errors import ProbeFailure
from diskprobe.models.disk import DeviceType, DiskState, HealthStatus, InterfaceType, PhysicalDisk

# Block major numbers of device classes that only wrap other storage
LOOP_MAJOR = 7
OPTICAL_MAJOR = 11
EXCLUDED_MAJORS = frozenset({LOOP_MAJOR, OPTICAL_MAJOR})

_TRANSPORTS = {
    "sata": InterfaceType.SATA,
    "ata": InterfaceType.SATA,
    "sas": InterfaceType.SAS,
    "nvme": InterfaceType.NVME,
    "usb": InterfaceType.USB,
}


class BlockDevice(BaseModel):
    """One node of `lsblk --json` output."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    name: str
    path: Optional[str] = None
    type: str = ""
    maj_min: Optional[str] = Field(None, alias="maj:min")
    size: int = 0
    vendor: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    wwn: Optional[str] = None
    state: Optional[str] = None
    mountpoint: Optional[str] = None
    mountpoints: List[Optional[str]] = Field(default_factory=list)
    fstype: Optional[str] = None
    rota: bool = False
    tran: Optional[str] = None
    hctl: Optional[str] = None
    children: List["BlockDevice"] = Field(default_factory=list)

    @field_validator('vendor', 'model', 'serial', 'wwn', 'state', 'mountpoint',
                     'fstype', 'tran', 'hctl', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """lsblk pads vendor/model with spaces and reports missing values as null or ''."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator('size', mode='before')
    @classmethod
    def parse_size(cls, v):
        if v is None or v == "":
            return 0
        return int(v)

    @field_validator('rota', mode='before')
    @classmethod
    def parse_rota(cls, v):
        # Older util-linux prints "0"/"1" strings instead of JSON booleans
        if isinstance(v, str):
            return v.strip() in ("1", "true")
        return bool(v)

    @field_validator('children', 'mountpoints', mode='before')
    @classmethod
    def null_to_list(cls, v):
        return v or []

    @property
    def device_path(self) -> str:
        return self.path or f"/dev/{self.name}"

    @property
    def major(self) -> Optional[int]:
        if not self.maj_min:
            return None
        try:
            return int(self.maj_min.split(":", 1)[0])
        except ValueError:
            return None

    @property
    def is_physical_disk(self) -> bool:
        return self.type == "disk"

    @property
    def is_virtual_container(self) -> bool:
        """Loop and optical devices, identified by their block major number."""
        return self.type in ("loop", "rom") or self.major in EXCLUDED_MAJORS

    @property
    def is_zvol(self) -> bool:
        return self.device_path.startswith("/dev/zd")

    def mounted_paths(self) -> List[str]:
        """Mountpoints of this node (lsblk >= 2.37 reports several)."""
        points = [p for p in self.mountpoints if p]
        if self.mountpoint and self.mountpoint not in points:
            points.insert(0, self.mountpoint)
        return points

    def interface_type(self) -> InterfaceType:
        if self.tran and self.tran.lower() in _TRANSPORTS:
            return _TRANSPORTS[self.tran.lower()]
        path = self.device_path
        if path.startswith("/dev/nvme"):
            return InterfaceType.NVME
        if path.startswith("/dev/vd") or (self.model or "").lower() == "virtio":
            return InterfaceType.VIRTIO
        if path.startswith("/dev/sd"):
            return InterfaceType.SATA
        return InterfaceType.UNKNOWN

    def device_type(self) -> DeviceType:
        if self.interface_type() == InterfaceType.NVME:
            return DeviceType.NVME
        if self.rota:
            return DeviceType.HDD
        return DeviceType.SSD

    def to_physical_disk(self) -> PhysicalDisk:
        """Seed a fresh inventory record with enumerator defaults."""
        return PhysicalDisk(
            device_path=self.device_path,
            serial=self.serial or "",
            wwn=self.wwn or "",
            model=self.model or "",
            vendor=self.vendor or "",
            size_bytes=self.size,
            disk_type=self.device_type(),
            interface=self.interface_type(),
            state=DiskState.AVAILABLE,
            health=HealthStatus.UNKNOWN,
        )


BlockDevice.model_rebuild()


def parse_lsblk_json(output: str) -> List[BlockDevice]:
    """Parse `lsblk --json` output into top-level block devices.

    Raises:
        ProbeFailure: Output is not the JSON document lsblk produces
    """
    try:
        data: Dict[str, Any] = json.loads(output)
    except (TypeError, ValueError) as exc:
        raise ProbeFailure("lsblk", f"unparseable output: {exc}", output=output) from exc

    if not isinstance(data, dict) or not isinstance(data.get("blockdevices", []), list):
        raise ProbeFailure("lsblk", "missing 'blockdevices' list", output=output)

    try:
        return [BlockDevice.model_validate(node) for node in data.get("blockdevices", [])]
    except ValidationError as exc:
        raise ProbeFailure("lsblk", f"unexpected device record: {exc}", output=output) from exc


def filter_physical_disks(devices: List[BlockDevice]) -> List[BlockDevice]:
    """Keep physical disks; drop partitions, loop/optical devices and zvols.

    Devices sharing a path (multipath nodes reported twice) are kept once.
    """
    disks: List[BlockDevice] = []
    seen = set()
    for dev in devices:
        if not dev.is_physical_disk or dev.is_virtual_container or dev.is_zvol:
            continue
        if dev.device_path in seen:
            continue
        seen.add(dev.device_path)
        disks.append(dev)
    return disks
