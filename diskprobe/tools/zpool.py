"""zpool wrapper (pool status queries)."""
from typing import Optional

from diskprobe.core.command import ProbeContext
from diskprobe.parsers.zpool import PoolStatus, parse_zpool_status_json
from diskprobe.tools.base import ProbeTool


class ZpoolTool(ProbeTool):
    name = "zpool"

    def status(self, ctx: Optional[ProbeContext] = None) -> PoolStatus:
        """Status of every imported pool (needs OpenZFS >= 2.3 for -j)."""
        result = self._run(["status", "-j"], ctx=ctx)
        return parse_zpool_status_json(result.stdout)
