"""udevadm wrapper (device property queries)."""
from typing import Dict, Optional

from diskprobe.core.command import ProbeContext
from diskprobe.parsers.properties import parse_properties
from diskprobe.tools.base import ProbeTool


class UdevadmTool(ProbeTool):
    name = "udevadm"

    def info(self, device: str, ctx: Optional[ProbeContext] = None) -> Dict[str, str]:
        """udev properties of a device (ID_SERIAL, ID_WWN, DEVLINKS, ...)."""
        result = self._run(
            ["info", "--query=property", f"--name={device}"],
            ctx=ctx,
            device=device,
        )
        return parse_properties(result.stdout)
