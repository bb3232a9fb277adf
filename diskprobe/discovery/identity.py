"""Identity resolution from udev properties.

A disk's DeviceID must survive reboots and /dev/sdX renumbering, so it is
taken from the strongest identity udev reports:

    serial  >  WWN  >  first /dev/disk/by-id/ link  >  device path

The device path is only ever used when nothing stronger is known.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import DiskProbeError, ToolNotAvailable
from diskprobe.core.logger import get_logger
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.models.disk import DeviceIDSource, PhysicalDisk
from diskprobe.tools.checker import ToolChecker
from diskprobe.tools.udevadm import UdevadmTool

logger = get_logger(__name__)

STAGE = "identity"

BY_ID_PREFIX = "/dev/disk/by-id/"
BY_PATH_PREFIX = "/dev/disk/by-path/"


def resolve_device_id(disk: PhysicalDisk) -> Tuple[str, DeviceIDSource]:
    """Pick the canonical identity for a disk. Pure and deterministic."""
    if disk.serial:
        return disk.serial, DeviceIDSource.SERIAL
    if disk.wwn:
        return disk.wwn, DeviceIDSource.WWN
    for link in disk.device_links:
        if link.startswith(BY_ID_PREFIX):
            return link, DeviceIDSource.BY_ID
    return disk.device_path, DeviceIDSource.PATH


def split_links(devlinks: str) -> List[str]:
    """DEVLINKS is space separated; keep first-seen order, drop duplicates."""
    links: List[str] = []
    for link in devlinks.split():
        if link not in links:
            links.append(link)
    return links


def apply_udev_properties(disk: PhysicalDisk, props: Dict[str, str]) -> None:
    """Copy identity attributes from a udev property set onto a disk.

    Values lsblk already reported win for serial, model and vendor; WWN and
    links always come from udev.
    """
    if not disk.serial and props.get("ID_SERIAL"):
        disk.serial = props["ID_SERIAL"]
    if props.get("ID_WWN"):
        disk.wwn = props["ID_WWN"]
    if not disk.model and props.get("ID_MODEL"):
        disk.model = props["ID_MODEL"]
    if not disk.vendor and props.get("ID_VENDOR"):
        disk.vendor = props["ID_VENDOR"]

    disk.device_links = split_links(props.get("DEVLINKS", ""))
    disk.by_id_path = next((l for l in disk.device_links if l.startswith(BY_ID_PREFIX)), "")

    if props.get("ID_PATH"):
        disk.by_path_path = BY_PATH_PREFIX + props["ID_PATH"]
    else:
        disk.by_path_path = next((l for l in disk.device_links if l.startswith(BY_PATH_PREFIX)), "")


class IdentityResolver:
    """Enrichment stage: udev query per disk, then DeviceID selection."""

    name = STAGE

    def __init__(self, udevadm: UdevadmTool, tool_checker: ToolChecker):
        self.udevadm = udevadm
        self.tool_checker = tool_checker

    def run(self, disks: Sequence[PhysicalDisk], report: ScanReport, ctx: Optional[ProbeContext] = None) -> None:
        if not self.tool_checker.tool_available("udevadm"):
            logger.warning("udevadm not available, skipping identity resolution")
            for disk in disks:
                report.record(STAGE, disk.device_path, StageOutcome.TOOL_UNAVAILABLE)
            return

        for disk in disks:
            outcome, detail = self.enrich(disk, ctx)
            report.record(STAGE, disk.device_path, outcome, detail)

    def enrich(self, disk: PhysicalDisk, ctx: Optional[ProbeContext] = None) -> Tuple[StageOutcome, str]:
        try:
            props = self.udevadm.info(disk.device_path, ctx)
        except ToolNotAvailable as exc:
            logger.warning(f"udevadm disappeared while resolving {disk.device_path}: {exc}")
            return StageOutcome.TOOL_UNAVAILABLE, str(exc)
        except DiskProbeError as exc:
            logger.warning(f"Failed to query udev properties for {disk.device_path}: {exc}")
            return StageOutcome.PROBE_FAILED, str(exc)

        apply_udev_properties(disk, props)
        disk.device_id, disk.device_id_source = resolve_device_id(disk)
        logger.debug(
            f"{disk.device_path}: device id {disk.device_id} ({disk.device_id_source.value})"
        )
        return StageOutcome.APPLIED, disk.device_id_source.value
