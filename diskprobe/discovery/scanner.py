"""Physical disk discovery engine."""
import dataclasses
from datetime import datetime, timezone
from typing import Dict, List, Optional

from diskprobe.core.command import CommandExecutor, ProbeContext
from diskprobe.core.config import DiskProbeConfig, get_config
from diskprobe.core.errors import DiscoveryError, DiskProbeError, ErrorCode
from diskprobe.core.logger import get_logger
from diskprobe.discovery.cache import DiscoveryCache
from diskprobe.discovery.enumerator import BlockDeviceEnumerator, EnumerationResult
from diskprobe.discovery.hwdetect import EnvironmentDetector
from diskprobe.discovery.identity import IdentityResolver
from diskprobe.discovery.outcome import ScanReport
from diskprobe.discovery.pools import PoolMembershipResolver
from diskprobe.discovery.smart import SmartProber
from diskprobe.discovery.system_usage import SystemUsageClassifier
from diskprobe.models.disk import PhysicalDisk
from diskprobe.tools.checker import ToolChecker
from diskprobe.tools.lsblk import LsblkTool
from diskprobe.tools.smartctl import SmartctlTool
from diskprobe.tools.udevadm import UdevadmTool
from diskprobe.tools.zpool import ZpoolTool

logger = get_logger(__name__)


class DiskDiscovery:
    """Discover physical disks and classify their role.

    A scan enumerates block devices with lsblk, then runs the enrichment
    stages in order:

        identity (udevadm) -> system usage -> SMART (smartctl) -> pools (zpool)

    and finally publishes the result to the cache. Only enumeration failure
    aborts a scan; every later stage degrades per disk and records what
    happened in `last_report`.
    """

    def __init__(
        self,
        config: Optional[DiskProbeConfig] = None,
        executor: Optional[CommandExecutor] = None,
        tool_checker: Optional[ToolChecker] = None,
        env_detector: Optional[EnvironmentDetector] = None,
        mock: bool = False,
    ):
        config = config or get_config()
        if mock and not config.mock:
            config = dataclasses.replace(config, mock=True)
        self.config = config
        self.mock = config.mock

        self.executor = executor or CommandExecutor(use_sudo=config.use_sudo, mock=self.mock)
        self.tool_checker = tool_checker or ToolChecker(config, self.executor)
        self.env_detector = env_detector or EnvironmentDetector(config=config, executor=self.executor)

        self.enumerator = BlockDeviceEnumerator(LsblkTool(config, self.executor))
        self.identity = IdentityResolver(UdevadmTool(config, self.executor), self.tool_checker)
        self.system_usage = SystemUsageClassifier()
        self.smart = SmartProber(SmartctlTool(config, self.executor), self.tool_checker, self.env_detector)
        self.pools = PoolMembershipResolver(ZpoolTool(config, self.executor), self.tool_checker)

        self.cache = DiscoveryCache()
        self.last_report: Optional[ScanReport] = None

    def discover_all(self, ctx: Optional[ProbeContext] = None) -> List[PhysicalDisk]:
        """Run a full scan and replace the cache with its result.

        Returns:
            Copies of the discovered disks, in enumeration order

        Raises:
            DiscoveryError: Block devices could not be enumerated
                (code DISCOVERY_FAILED); the cache is left untouched
        """
        report = ScanReport()
        self.last_report = report
        logger.info("Starting disk discovery")

        result = self._enumerate(report, "discover_block_devices", None, ctx)
        self._enrich(result, report, ctx)

        scanned_at = datetime.now(timezone.utc)
        self.cache.replace_all(result.disks, scanned_at)
        report.finish()

        logger.info(f"Discovered {len(result.disks)} disk(s) in {report.duration:.2f}s")
        failures = report.failures()
        if failures:
            logger.warning(f"{len(failures)} enrichment probe(s) failed during discovery")
        return [disk.copy() for disk in result.disks]

    def refresh_device(self, device_path: str, ctx: Optional[ProbeContext] = None) -> PhysicalDisk:
        """Re-discover one device and replace only its cache entry.

        Raises:
            DiscoveryError: DEVICE_NOT_FOUND when lsblk does not report the
                device as a physical disk, DISCOVERY_FAILED when lsblk fails
        """
        report = ScanReport()
        self.last_report = report
        logger.info(f"Refreshing device {device_path}")

        result = self._enumerate(report, "refresh_device", device_path, ctx)
        self._enrich(result, report, ctx)

        disk = result.disks[0]
        self.cache.put(disk)
        report.finish()
        return disk.copy()

    def get_cached_devices(self) -> Dict[str, PhysicalDisk]:
        """Copies of the devices from the last scan (plus later refreshes), keyed by device path."""
        return self.cache.snapshot()

    def get_last_scan_time(self) -> Optional[datetime]:
        return self.cache.last_scan_time()

    def _enumerate(
        self,
        report: ScanReport,
        operation: str,
        device_path: Optional[str],
        ctx: Optional[ProbeContext],
    ) -> EnumerationResult:
        if not self.tool_checker.tool_available("lsblk"):
            report.finish()
            raise DiscoveryError(
                ErrorCode.DISCOVERY_FAILED,
                "Failed to discover block devices: lsblk is not available",
                operation=operation,
                device=device_path,
                metadata={"tool": "lsblk"},
            )

        try:
            if device_path is None:
                result = self.enumerator.enumerate_with_children(ctx)
            else:
                result = self.enumerator.enumerate_one(device_path, ctx)
        except DiskProbeError as exc:
            report.finish()
            logger.error(f"Block device enumeration failed: {exc}")
            raise DiscoveryError(
                ErrorCode.DISCOVERY_FAILED,
                f"Failed to discover block devices: {exc}",
                operation=operation,
                device=device_path,
                metadata={"tool": "lsblk"},
            ) from exc

        if result is None:
            report.finish()
            raise DiscoveryError(
                ErrorCode.DEVICE_NOT_FOUND,
                f"Device {device_path} not found",
                operation=operation,
                device=device_path,
            )
        return result

    def _enrich(self, result: EnumerationResult, report: ScanReport, ctx: Optional[ProbeContext]) -> None:
        self.identity.run(result.disks, report, ctx)
        self.system_usage.run(result.disks, result.block_devices, report)
        self.smart.run(result.disks, report, ctx)
        self.pools.run(result.disks, report, ctx)
