"""Block-device enumeration: the seed list every scan starts from."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from diskprobe.core.command import ProbeContext
from diskprobe.core.logger import get_logger
from diskprobe.models.disk import PhysicalDisk
from diskprobe.parsers.lsblk import BlockDevice, filter_physical_disks
from diskprobe.tools.lsblk import LsblkTool

logger = get_logger(__name__)


@dataclass
class EnumerationResult:
    """Seeded disks plus the raw lsblk nodes they came from.

    The nodes (with their children) are kept so the system-usage stage can
    inspect partitions without another probe.
    """
    disks: List[PhysicalDisk] = field(default_factory=list)
    block_devices: Dict[str, BlockDevice] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.disks)


class BlockDeviceEnumerator:
    """Turns lsblk output into fresh PhysicalDisk records."""

    def __init__(self, lsblk: LsblkTool):
        self.lsblk = lsblk

    def enumerate_with_children(self, ctx: Optional[ProbeContext] = None) -> EnumerationResult:
        """Enumerate every physical disk.

        Raises:
            ToolNotAvailable: lsblk is missing
            ProbeFailure: lsblk failed or produced unusable output
        """
        devices = self.lsblk.list_disks_with_children(ctx)
        result = self._seed(devices)
        logger.debug(f"Enumerated {len(result)} physical disk(s) from {len(devices)} block device(s)")
        return result

    def enumerate_one(self, device_path: str, ctx: Optional[ProbeContext] = None) -> Optional[EnumerationResult]:
        """Enumerate a single device; None when it is absent or not a physical disk.

        Raises:
            ToolNotAvailable: lsblk is missing
            ProbeFailure: lsblk failed or produced unusable output
        """
        result = self._seed(self.lsblk.get_device(device_path, ctx))
        if not result.disks:
            return None
        return result

    @staticmethod
    def _seed(devices: Iterable[BlockDevice]) -> EnumerationResult:
        result = EnumerationResult()
        for dev in filter_physical_disks(list(devices)):
            disk = dev.to_physical_disk()
            result.disks.append(disk)
            result.block_devices[disk.device_path] = dev
        return result
