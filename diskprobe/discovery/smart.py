"""SMART capability probing."""
from typing import Optional, Sequence, Tuple

from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import DiskProbeError, ProbeCancelled, ToolNotAvailable
from diskprobe.core.logger import get_logger
from diskprobe.discovery.hwdetect import EnvironmentDetector
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.models.disk import DeviceType, PhysicalDisk
from diskprobe.models.environment import EnvironmentInfo
from diskprobe.parsers.smartctl import detect_device_type
from diskprobe.tools.checker import ToolChecker
from diskprobe.tools.smartctl import SmartctlTool

logger = get_logger(__name__)

STAGE = "smart"

# Cloud block storage exposes no SMART data worth querying
CLOUD_HYPERVISORS = frozenset({"amazon", "google", "azure"})
CLOUD_PROVIDERS = frozenset({"aws", "gcp", "azure"})
CLOUD_DISK_MODELS = ("amazon elastic block store", "google persistentdisk", "virtual disk")


def should_skip_smart(env: Optional[EnvironmentInfo], disk: PhysicalDisk) -> bool:
    """Whether SMART probing is pointless for this disk.

    Only virtualized hosts are ever skipped: a public cloud hypervisor or
    provider, or a model string that names a cloud/virtual disk.
    """
    if env is None or not env.is_virtualized:
        return False
    if env.hypervisor.lower() in CLOUD_HYPERVISORS:
        return True
    if env.cloud_provider.lower() in CLOUD_PROVIDERS:
        return True
    model = disk.model.lower()
    return any(marker in model for marker in CLOUD_DISK_MODELS)


def clear_smart(disk: PhysicalDisk) -> None:
    disk.smart_available = False
    disk.smart_enabled = False
    disk.smart_tests_supported = False
    disk.smart_info = None


class SmartProber:
    """Enrichment stage: SMART support flags and diagnostic payload."""

    name = STAGE

    def __init__(self, smartctl: SmartctlTool, tool_checker: ToolChecker, env_detector: EnvironmentDetector):
        self.smartctl = smartctl
        self.tool_checker = tool_checker
        self.env_detector = env_detector

    def run(self, disks: Sequence[PhysicalDisk], report: ScanReport, ctx: Optional[ProbeContext] = None) -> None:
        if not self.tool_checker.tool_available("smartctl"):
            logger.warning("smartctl not available, skipping SMART probing")
            for disk in disks:
                clear_smart(disk)
                report.record(STAGE, disk.device_path, StageOutcome.TOOL_UNAVAILABLE)
            return

        env = self._environment(ctx)
        for disk in disks:
            outcome, detail = self.enrich(disk, env, ctx)
            report.record(STAGE, disk.device_path, outcome, detail)

    def _environment(self, ctx: Optional[ProbeContext]) -> Optional[EnvironmentInfo]:
        try:
            return self.env_detector.detect_environment(ctx)
        except ProbeCancelled as exc:
            logger.warning(f"Environment detection cancelled: {exc}")
        except DiskProbeError as exc:
            logger.warning(f"Environment detection failed, probing SMART on all disks: {exc}")
        return None

    def enrich(
        self,
        disk: PhysicalDisk,
        env: Optional[EnvironmentInfo],
        ctx: Optional[ProbeContext] = None,
    ) -> Tuple[StageOutcome, str]:
        clear_smart(disk)

        if should_skip_smart(env, disk):
            logger.debug(f"Skipping SMART for {disk.device_path} (cloud or virtual disk)")
            return StageOutcome.SKIPPED, "cloud or virtual disk"

        try:
            info = self.smartctl.get_info(disk.device_path, ctx)
        except ToolNotAvailable as exc:
            logger.warning(f"smartctl disappeared while probing {disk.device_path}: {exc}")
            return StageOutcome.TOOL_UNAVAILABLE, str(exc)
        except DiskProbeError as exc:
            logger.warning(f"Failed to get SMART info for {disk.device_path}: {exc}")
            return StageOutcome.PROBE_FAILED, str(exc)

        disk.smart_info = info
        disk.smart_available = info.available
        disk.smart_enabled = info.enabled

        refined = detect_device_type(info)
        if refined != DeviceType.UNKNOWN and refined != disk.disk_type:
            logger.debug(f"{disk.device_path}: type {disk.disk_type.value} -> {refined.value} from SMART")
            disk.disk_type = refined

        if info.available:
            disk.smart_tests_supported = self._self_tests_supported(disk, ctx)

        return StageOutcome.APPLIED, info.overall_status

    def _self_tests_supported(self, disk: PhysicalDisk, ctx: Optional[ProbeContext]) -> bool:
        try:
            return self.smartctl.can_run_self_tests(disk.device_path, ctx)
        except DiskProbeError as exc:
            logger.warning(f"Failed to check self-test capability for {disk.device_path}: {exc}")
            return False
