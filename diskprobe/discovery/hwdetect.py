import re
from pathlib import Path
from typing import Callable, Optional, Sequence

from diskprobe.core.command import CommandExecutor, ProbeContext
from diskprobe.core.config import DiskProbeConfig, get_config
from diskprobe.core.errors import ProbeCancelled, ProbeFailure, ToolNotAvailable
from diskprobe.core.logger import get_logger
from diskprobe.models.environment import DeploymentEnvironment, EnvironmentInfo

logger = get_logger(__name__)

RunCmd = Callable[[str, Sequence[str], Optional[ProbeContext]], str]
ReadFile = Callable[[str], str]

CPUINFO_PATH = "/proc/cpuinfo"
DMI_PRODUCT_PATH = "/sys/class/dmi/id/product_name"

# DMI product name fragment -> hypervisor token
VIRT_PRODUCTS = (
    ("vmware", "vmware"),
    ("virtualbox", "virtualbox"),
    ("kvm", "kvm"),
    ("qemu", "qemu"),
    ("xen", "xen"),
    ("amazon ec2", "amazon"),
    ("google compute", "google"),
    ("azure", "azure"),
    ("microsoft", "microsoft"),
)

# DMI product name fragment -> cloud provider
CLOUD_PRODUCTS = (
    ("amazon", "aws"),
    ("ec2", "aws"),
    ("google", "gcp"),
    ("microsoft", "azure"),
    ("azure", "azure"),
)

# systemd-detect-virt tokens that only appear on public clouds
CLOUD_HYPERVISORS = {"amazon": "aws", "google": "gcp", "azure": "azure"}


class EnvironmentDetector:
    """
    Works out whether the host is bare metal, an on-premise VM or a public
    cloud instance. Consumed by the SMART stage to skip probing cloud block
    storage, and by `diskprobe env`.
    """

    def __init__(
        self,
        run_cmd: Optional[RunCmd] = None,
        read_file: Optional[ReadFile] = None,
        config: Optional[DiskProbeConfig] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        self.config = config or get_config()
        self.executor = executor or CommandExecutor(use_sudo=self.config.use_sudo, mock=self.config.mock)
        self.run_cmd = run_cmd or self._run
        if read_file is not None:
            self.read_file = read_file
        elif self.config.mock:
            self.read_file = lambda path: ""
        else:
            self.read_file = self._read

    # -----------------------------
    #  Detection entry point
    # -----------------------------
    def detect_environment(self, ctx: Optional[ProbeContext] = None) -> EnvironmentInfo:
        """Classify the host.

        Individual probes that fail are logged and skipped; when none of
        them yields anything the type is UNKNOWN.

        Raises:
            ProbeCancelled: ctx was cancelled while probing
        """
        info = EnvironmentInfo()
        product = self._product_name(ctx)

        virt = self._detect_virtualization(ctx, product)
        if virt is None:
            info.type = DeploymentEnvironment.UNKNOWN
        else:
            info.is_virtualized, info.hypervisor = virt

        info.kernel_version = self._kernel_version(ctx)
        info.cloud_provider = self._cloud_provider(info.hypervisor, product)

        if virt is not None:
            info.type = self._environment_type(info)

        logger.debug(
            f"Environment detected: type={info.type.value} virtualized={info.is_virtualized} "
            f"hypervisor={info.hypervisor or '-'} cloud={info.cloud_provider or '-'}"
        )
        return info

    # -----------------------------
    #  Individual detectors
    # -----------------------------
    def _detect_virtualization(self, ctx, product: Optional[str]):
        """(is_virtualized, hypervisor), or None when nothing could be probed."""
        token = self._try(ctx, "systemd-detect-virt", [])
        if token is not None:
            token = token.strip().lower()
            if token and token != "none":
                return True, token
            return False, ""

        if product:
            for fragment, hypervisor in VIRT_PRODUCTS:
                if fragment in product:
                    return True, hypervisor

        cpuinfo = self._read_quietly(CPUINFO_PATH)
        if cpuinfo is None:
            return (False, "") if product else None
        if re.search(r"^flags\s*:.*\bhypervisor\b", cpuinfo, re.MULTILINE):
            return True, "unknown"
        return False, ""

    def _product_name(self, ctx) -> Optional[str]:
        product = self._try(ctx, "dmidecode", ["-s", "system-product-name"])
        if product is None:
            product = self._read_quietly(DMI_PRODUCT_PATH)
        if product is None:
            return None
        return product.strip().lower()

    def _kernel_version(self, ctx) -> str:
        return (self._try(ctx, "uname", ["-r"]) or "").strip()

    @staticmethod
    def _cloud_provider(hypervisor: str, product: Optional[str]) -> str:
        if hypervisor in CLOUD_HYPERVISORS:
            return CLOUD_HYPERVISORS[hypervisor]
        for fragment, provider in CLOUD_PRODUCTS:
            if product and fragment in product:
                return provider
        return ""

    @staticmethod
    def _environment_type(info: EnvironmentInfo) -> DeploymentEnvironment:
        if not info.is_virtualized:
            return DeploymentEnvironment.PHYSICAL
        if info.cloud_provider:
            return DeploymentEnvironment.VIRTUAL_RESTRICTED
        return DeploymentEnvironment.VIRTUAL_OPEN

    # -----------------------------
    #  Utility helpers
    # -----------------------------
    def _try(self, ctx, tool: str, args: Sequence[str]) -> Optional[str]:
        try:
            return self.run_cmd(tool, args, ctx)
        except ProbeCancelled:
            raise
        except (ToolNotAvailable, ProbeFailure) as exc:
            logger.debug(f"Environment probe {tool} failed: {exc}")
            return None

    def _read_quietly(self, path: str) -> Optional[str]:
        try:
            return self.read_file(path)
        except OSError as exc:
            logger.debug(f"Cannot read {path}: {exc}")
            return None

    def _run(self, tool: str, args: Sequence[str], ctx: Optional[ProbeContext]) -> str:
        # systemd-detect-virt exits 1 when it prints "none"
        ok_codes = (0, 1) if tool == "systemd-detect-virt" else (0,)
        result = self.executor.run(
            tool,
            tool,
            args,
            ctx=ctx,
            timeout=self.config.environment_timeout,
            ok_codes=ok_codes,
        )
        return result.stdout

    @staticmethod
    def _read(path: str) -> str:
        return Path(path).read_text()
