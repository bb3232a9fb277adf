"""lsblk wrapper (block device enumeration)."""
from typing import List, Optional

from diskprobe.core.command import ProbeContext
from diskprobe.core.logger import get_logger
from diskprobe.parsers.lsblk import EXCLUDED_MAJORS, BlockDevice, parse_lsblk_json
from diskprobe.tools.base import ProbeTool

logger = get_logger(__name__)

COLUMNS = "NAME,PATH,TYPE,MAJ:MIN,SIZE,VENDOR,MODEL,SERIAL,WWN,STATE,MOUNTPOINT,FSTYPE,ROTA,TRAN,HCTL"

# "none of specified devices found"
NOT_FOUND_EXIT = 32


class LsblkTool(ProbeTool):
    """Runs lsblk with JSON output."""

    name = "lsblk"

    def list_disks_with_children(self, ctx: Optional[ProbeContext] = None) -> List[BlockDevice]:
        """All block devices with their partitions and mountpoints.

        Loop and optical majors are excluded by lsblk itself.
        """
        logger.debug("Listing block devices with children")
        exclude = ",".join(str(major) for major in sorted(EXCLUDED_MAJORS))
        result = self._run(
            ["--json", "--output", COLUMNS, "--bytes", "--paths", "--exclude", exclude],
            ctx=ctx,
        )
        return parse_lsblk_json(result.stdout)

    def get_device(self, device: str, ctx: Optional[ProbeContext] = None) -> List[BlockDevice]:
        """One device (and its children); empty when lsblk does not know it."""
        logger.debug(f"Getting block device info for {device}")
        result = self._run(
            ["--json", "--output", COLUMNS, "--bytes", "--paths", device],
            ctx=ctx,
            device=device,
            ok_codes=(0, NOT_FOUND_EXIT),
        )
        if result.returncode == NOT_FOUND_EXIT:
            return []
        return parse_lsblk_json(result.stdout)
