"""Wrappers around the external probe binaries."""
from diskprobe.tools.checker import DISCOVERY_TOOLS, ToolChecker, ToolStatus
from diskprobe.tools.lsblk import LsblkTool
from diskprobe.tools.smartctl import SmartctlTool
from diskprobe.tools.udevadm import UdevadmTool
from diskprobe.tools.zpool import ZpoolTool

__all__ = [
    'DISCOVERY_TOOLS',
    'LsblkTool',
    'SmartctlTool',
    'ToolChecker',
    'ToolStatus',
    'UdevadmTool',
    'ZpoolTool',
]
