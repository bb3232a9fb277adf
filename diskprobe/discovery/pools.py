"""Pool-membership resolution against `zpool status` output."""
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import DiskProbeError
from diskprobe.core.logger import get_logger
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.models.disk import DiskState, PhysicalDisk
from diskprobe.parsers.zpool import VdevInfo, pool_members
from diskprobe.tools.checker import ToolChecker
from diskprobe.tools.zpool import ZpoolTool

logger = get_logger(__name__)

STAGE = "pools"

VDEV_STATES = {
    "ONLINE": DiskState.ONLINE,
    "DEGRADED": DiskState.DEGRADED,
    "FAULTED": DiskState.FAULTED,
    "UNAVAIL": DiskState.UNAVAIL,
    "OFFLINE": DiskState.OFFLINE,
    # hot spares: idle, or standing in for a failed device
    "AVAIL": DiskState.ONLINE,
    "INUSE": DiskState.ONLINE,
}

_NUMBERED_PARTITION = re.compile(r"^p?\d+$")


def map_vdev_state(token: str) -> DiskState:
    """Map a vdev health token to a disk state; unknown tokens count as ONLINE."""
    state = VDEV_STATES.get((token or "").strip().upper())
    if state is None:
        logger.warning(f"Unknown vdev state {token!r}, treating as ONLINE")
        return DiskState.ONLINE
    return state


def is_partition_of(member_path: str, lookup: Iterable[str]) -> bool:
    """Whether member_path names a partition of any path in lookup.

    Accepted suffixes after the disk path:
      -part3         by-id / by-path links
      p3             nvme0n1p3, mmcblk0p1
      3              sda3, only when the disk path does not end in a digit
    """
    for base in lookup:
        if not base or not member_path.startswith(base) or member_path == base:
            continue
        suffix = member_path[len(base):]
        if suffix.startswith("-") and len(suffix) > 1:
            return True
        if suffix.startswith("p") and _NUMBERED_PARTITION.match(suffix):
            return True
        if suffix.isdigit() and not base[-1].isdigit():
            return True
    return False


def find_pool_membership(
    disk: PhysicalDisk,
    pools: Dict[str, List[VdevInfo]],
) -> Optional[Tuple[str, str]]:
    """First (pool, vdev state) whose member is the disk or one of its partitions."""
    lookup = disk.lookup_paths
    lookup_set = set(lookup)
    for pool_name, members in pools.items():
        for member in members:
            if member.path in lookup_set or is_partition_of(member.path, lookup):
                return pool_name, member.state
    return None


class PoolMembershipResolver:
    """Enrichment stage: pool name and vdev health for pool members."""

    name = STAGE

    def __init__(self, zpool: ZpoolTool, tool_checker: ToolChecker):
        self.zpool = zpool
        self.tool_checker = tool_checker

    def run(self, disks: Sequence[PhysicalDisk], report: ScanReport, ctx: Optional[ProbeContext] = None) -> None:
        if not self.tool_checker.tool_available("zpool"):
            logger.debug("zpool not available, skipping pool membership")
            self._record_all(disks, report, StageOutcome.TOOL_UNAVAILABLE)
            return

        try:
            status = self.zpool.status(ctx)
        except DiskProbeError as exc:
            logger.warning(f"Failed to get pool status: {exc}")
            self._record_all(disks, report, StageOutcome.PROBE_FAILED, str(exc))
            return

        pools = pool_members(status)
        for disk in disks:
            match = find_pool_membership(disk, pools)
            if match is None:
                report.record(STAGE, disk.device_path, StageOutcome.NO_MATCH)
                continue
            pool_name, vdev_state = match
            disk.pool_name = pool_name
            # Pool membership outranks SYSTEM: a boot pool member reports its vdev health
            disk.state = map_vdev_state(vdev_state)
            logger.debug(f"{disk.device_path} is in pool {pool_name} ({disk.state.value})")
            report.record(STAGE, disk.device_path, StageOutcome.APPLIED, pool_name)

    @staticmethod
    def _record_all(disks, report: ScanReport, outcome: StageOutcome, detail: str = "") -> None:
        for disk in disks:
            report.record(STAGE, disk.device_path, outcome, detail)
