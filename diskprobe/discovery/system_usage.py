"""System-usage classification from enumerated partition data."""
from typing import List, Mapping, Sequence

from diskprobe.core.logger import get_logger
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.models.disk import DiskState, PhysicalDisk
from diskprobe.parsers.lsblk import BlockDevice

logger = get_logger(__name__)

STAGE = "system"


def mounted_descendants(device: BlockDevice) -> List[str]:
    """Mountpoints found anywhere below a device (partitions, LVM, crypt holders)."""
    mounts: List[str] = []
    for child in device.children:
        mounts.extend(child.mounted_paths())
        mounts.extend(mounted_descendants(child))
    return mounts


class SystemUsageClassifier:
    """Marks AVAILABLE disks that host a mounted file system as SYSTEM.

    Pure: works on the lsblk tree captured at enumeration time.
    """

    name = STAGE

    def run(
        self,
        disks: Sequence[PhysicalDisk],
        block_devices: Mapping[str, BlockDevice],
        report: ScanReport,
    ) -> None:
        for disk in disks:
            if disk.state != DiskState.AVAILABLE:
                report.record(STAGE, disk.device_path, StageOutcome.SKIPPED, f"state {disk.state.value}")
                continue

            device = block_devices.get(disk.device_path)
            if device is None:
                report.record(STAGE, disk.device_path, StageOutcome.NO_MATCH, "no block device data")
                continue

            mounts = mounted_descendants(device)
            if mounts:
                disk.state = DiskState.SYSTEM
                logger.debug(f"{disk.device_path} hosts mounted file systems: {', '.join(mounts)}")
                report.record(STAGE, disk.device_path, StageOutcome.APPLIED, ", ".join(mounts))
            else:
                report.record(STAGE, disk.device_path, StageOutcome.NO_MATCH)
